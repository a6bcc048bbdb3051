"""Tests for foundry."""
