"""
Encryption bounded context: authenticated field cipher, transparent field codec and
envelope key management with a bounded DEK cache.
"""
