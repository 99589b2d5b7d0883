"""Bundled map/reduce applications loadable with ``leasemr-worker``."""
