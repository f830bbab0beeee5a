"""
Application layer for journal bounded context: ports and use-cases.
"""
