"""Project-independent helpers used by the packager."""
