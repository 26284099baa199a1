"""
Test suite for Object Record Import.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_duplicate_detector.py -v
"""
