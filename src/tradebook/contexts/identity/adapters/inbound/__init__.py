"""Identity inbound adapters."""
