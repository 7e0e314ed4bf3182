"""
Utilities Package

Helper functions used across the application:
- responses.py: success and error envelope builders
"""
