"""Shared utilities: configuration, geometry and smoothing."""
