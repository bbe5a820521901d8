"""Core infrastructure: XDG paths, settings and theming."""
