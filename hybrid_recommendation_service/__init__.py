"""Hybrid collaborative / content-based recommendation service."""
