# MChain Test Suite
"""
Test suite including:
- Unit tests for hashing, mining, verification and storage
- Integration tests for the chain service and CLI
- Tamper and corruption scenarios

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
