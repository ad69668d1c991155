# Skipped by discovery: names starting with "_" are never imported.
raise RuntimeError("excluded modules must not be imported")
