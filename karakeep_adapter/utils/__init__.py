"""
Utility modules for the Karakeep Adapter.

This package contains the error hierarchy, credential and field validation,
and logging setup.
"""
