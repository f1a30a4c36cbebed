"""Tests for the bundler command line interface."""
