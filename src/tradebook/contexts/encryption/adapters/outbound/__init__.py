"""
Outbound adapters: AES-GCM cipher, key services and DEK cache.
"""
