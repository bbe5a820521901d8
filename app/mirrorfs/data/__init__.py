"""Bundled data files for mirrorfs."""
