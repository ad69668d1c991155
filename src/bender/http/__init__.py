"""HTTP primitives: canonical request/response and their helpers.

Every engine binding converts to and from these types so handlers
never touch an engine's own request or response objects.
"""
