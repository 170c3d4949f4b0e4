"""
Core Module
===========

Configuration, exceptions and logging.
"""
