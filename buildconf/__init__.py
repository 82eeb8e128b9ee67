"""Resolve a native build's options, probes and install paths into one record."""
