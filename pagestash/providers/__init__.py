"""Concrete adapters for the interfaces in :mod:`pagestash.interfaces`."""
