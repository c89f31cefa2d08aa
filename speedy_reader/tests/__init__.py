"""Tests for speedy_reader."""
