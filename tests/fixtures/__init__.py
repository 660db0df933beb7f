"""Shared test fixtures for davenport."""
