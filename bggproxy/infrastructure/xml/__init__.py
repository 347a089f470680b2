"""Generic XML tree decoding and cardinality-safe accessors."""
