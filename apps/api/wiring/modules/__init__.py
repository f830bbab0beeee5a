from .identity import IdentityApiModule, build_identity_api_module
from .journal import (
    JournalApiModule,
    build_cipher_resolver,
    build_journal_api_module,
    install_journal_module,
)

__all__ = [
    "IdentityApiModule",
    "JournalApiModule",
    "build_cipher_resolver",
    "build_identity_api_module",
    "build_journal_api_module",
    "install_journal_module",
]
