"""Routing: canonical paths, route entries, and the handler chain.

The engine's own router does the matching; everything here is what
happens once a native route fires.
"""
