"""Rotating doubles box league engine."""
