"""Generic shared utilities (logging, YAML loading, CLI argument helpers)."""
