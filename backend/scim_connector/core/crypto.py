# scim_connector/core/crypto.py
#
# Losing private_key.pem makes every stored secret unrecoverable.
# Keys are never rotated here; back the key directory up with the database.

import logging
import os
import threading
from pathlib import Path

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from scim_connector.core.errors import EncryptionError

logger = logging.getLogger(__name__)

KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537
PRIVATE_KEY_FILE = "private_key.pem"
PUBLIC_KEY_FILE = "public_key.pem"

# OAEP(SHA-256) with a 2048-bit modulus: 256 - 2*32 - 2
MAX_PLAINTEXT_BYTES = KEY_SIZE // 8 - 2 * 32 - 2

_OAEP = padding.OAEP(
    mgf=padding.MGF1(algorithm=hashes.SHA256()),
    algorithm=hashes.SHA256(),
    label=None,
)


class CredentialVault:
    """
    RSA keypair kept on disk, used to encrypt secrets before they are stored.
    ensure_keypair() must run once at startup; encrypt/decrypt never generate keys.
    """

    def __init__(self, key_dir: Path | str):
        self.key_dir = Path(key_dir)
        self._lock = threading.Lock()
        self._private_key = None
        self._public_key = None

    @property
    def private_key_path(self) -> Path:
        return self.key_dir / PRIVATE_KEY_FILE

    @property
    def public_key_path(self) -> Path:
        return self.key_dir / PUBLIC_KEY_FILE

    def keys_present(self) -> bool:
        return self.private_key_path.exists() and self.public_key_path.exists()

    # ---------- KEY MANAGEMENT ----------

    def ensure_keypair(self) -> None:
        """Generate and persist a keypair if none exists, then load it. Idempotent."""
        with self._lock:
            if self._private_key is not None:
                return

            self.key_dir.mkdir(parents=True, exist_ok=True)
            if not self.private_key_path.exists():
                self._generate()

            self._load()

    def _generate(self) -> None:
        private_key = rsa.generate_private_key(
            public_exponent=PUBLIC_EXPONENT,
            key_size=KEY_SIZE,
        )
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

        # Fully written temp file, then os.link: the private key appears complete
        # or not at all. The first process to link wins, the others load its key.
        tmp_path = self.key_dir / f".{PRIVATE_KEY_FILE}.{os.getpid()}.{threading.get_ident()}.tmp"
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(private_pem)
                f.flush()
                os.fsync(f.fileno())
            os.link(tmp_path, self.private_key_path)
        except FileExistsError:
            logger.info("Keypair created concurrently in %s, reusing it", self.key_dir)
            return
        finally:
            tmp_path.unlink(missing_ok=True)

        self.public_key_path.write_bytes(public_pem)
        logger.warning(
            "Generated new RSA keypair in %s - back it up, secrets cannot be recovered without it",
            self.key_dir,
        )

    def _load(self) -> None:
        try:
            private_key = serialization.load_pem_private_key(
                self.private_key_path.read_bytes(),
                password=None,
            )
        except (OSError, ValueError, TypeError) as e:
            raise EncryptionError(f"Unable to load private key: {e}", code="KEY_LOAD_FAILED") from e

        self._private_key = private_key
        self._public_key = private_key.public_key()
        if not self.public_key_path.exists():
            self.public_key_path.write_bytes(
                self._public_key.public_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PublicFormat.SubjectPublicKeyInfo,
                )
            )

    # ---------- ENCRYPTION ----------

    def encrypt(self, plaintext: str) -> bytes:
        """RSA-OAEP(SHA-256) -> 256 bytes of ciphertext"""
        if self._public_key is None:
            raise EncryptionError("No keypair loaded", code="KEYPAIR_MISSING")

        data = plaintext.encode("utf-8")
        if len(data) > MAX_PLAINTEXT_BYTES:
            raise EncryptionError(
                f"Secret is longer than {MAX_PLAINTEXT_BYTES} bytes",
                code="SECRET_TOO_LONG",
            )
        return self._public_key.encrypt(data, _OAEP)

    def decrypt(self, ciphertext: bytes) -> str:
        if self._private_key is None:
            raise EncryptionError("No keypair loaded", code="KEYPAIR_MISSING")

        try:
            return self._private_key.decrypt(bytes(ciphertext), _OAEP).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            # Wrong key and corrupted ciphertext look the same under OAEP
            raise EncryptionError(
                "Ciphertext does not match the loaded keypair or is malformed",
                code="DECRYPT_FAILED",
            ) from e
