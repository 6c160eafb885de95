"""
Configuration and formatting helpers.
"""
