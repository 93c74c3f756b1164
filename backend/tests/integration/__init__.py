"""
Integration Tests - Quote Gateway
"""
