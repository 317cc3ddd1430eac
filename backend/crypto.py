"""
Field-level encryption collaborator.

The core never implements a cipher itself. It talks to any object with
`encrypt(plaintext) -> str` and `decrypt(ciphertext) -> str | None`.
Implementations must be deterministic (participant ids are matched by
comparing ciphertexts) and safe to call from several threads.

`PassthroughCipher` is the default wiring for development databases that
store plaintext.
"""

from typing import Optional, Protocol


class Cipher(Protocol):
    def encrypt(self, plaintext: str) -> str: ...

    def decrypt(self, ciphertext: str) -> Optional[str]: ...


class PassthroughCipher:
    """Identity cipher for plaintext storage."""

    def encrypt(self, plaintext: str) -> str:
        return plaintext

    def decrypt(self, ciphertext: str) -> Optional[str]:
        return ciphertext


def decrypt_or_raw(cipher: Cipher, value: str) -> str:
    """Decrypt `value`, falling back to `value` itself.

    Legacy rows were written both encrypted and in plaintext, and a value
    that does not decrypt is taken to be plaintext already.
    """

    decrypted = cipher.decrypt(value)
    if not decrypted:
        return value
    return decrypted
