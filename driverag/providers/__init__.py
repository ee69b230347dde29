"""Concrete adapters for the interfaces in :mod:`driverag.interfaces`."""
