"""
Adapters package for encryption bounded context.
"""
