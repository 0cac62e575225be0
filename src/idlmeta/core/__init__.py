"""Core model, validation, parsing and include resolution for idlmeta."""
