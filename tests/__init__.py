# Synth Gallery Test Suite
"""
Test suite for Synth Gallery refactoring.

These tests are designed to verify API behavior remains constant
while internal implementation (database.py) is being refactored.

Key principle: Test through API, not internals.
"""
