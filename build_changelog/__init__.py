"""Changelogs between consecutive build tags of a repository."""
