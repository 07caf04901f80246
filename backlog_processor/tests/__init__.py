"""Tests for the backlog processor."""
