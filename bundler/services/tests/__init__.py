"""Tests for bundler services."""
