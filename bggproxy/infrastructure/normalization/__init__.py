"""Mapping of generic XML trees onto domain records."""
