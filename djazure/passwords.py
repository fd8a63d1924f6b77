import secrets
import string
import subprocess

from loguru import logger as log

from djazure.errors import PreconditionError
from util.cmd import CMD


class Passwords:
    """
    Generates the admin password and the Django secret key for a plan.

    Two backends:
        python:  the standard `secrets` module.
        openssl: `openssl rand -base64 48`, filtered to alphanumerics.

    Admin passwords are alphanumeric so they can sit unescaped in a
    postgresql:// connection string, and always contain an upper-case letter,
    a lower-case letter and a digit (Azure requires three of four classes).
    """

    ADMIN_PASSWORD_LENGTH = 24
    SECRET_KEY_LENGTH = 50
    ALPHABET = string.ascii_letters + string.digits

    @staticmethod
    def generator_available(backend: str) -> bool:
        if backend == "python":
            return True
        if backend == "openssl":
            return CMD.which("openssl") is not None
        return False

    @staticmethod
    def _openssl_chars(count: int) -> str:
        """Draw at least `count` alphanumeric characters from openssl."""
        out = ""
        while len(out) < count:
            try:
                completed = CMD.run(["openssl", "rand", "-base64", "48"], capture_output=True, check=True)
            except (OSError, subprocess.CalledProcessError) as e:
                raise PreconditionError(f"[Passwords] openssl rand failed: {e}") from e
            out += "".join(c for c in completed.stdout if c in Passwords.ALPHABET)
        return out[:count]

    @staticmethod
    def _draw(backend: str, count: int) -> str:
        if backend == "openssl":
            return Passwords._openssl_chars(count)
        return "".join(secrets.choice(Passwords.ALPHABET) for _ in range(count))

    @staticmethod
    def generate_password(backend: str = "python", length: int = ADMIN_PASSWORD_LENGTH) -> str:
        """
        Generate an alphanumeric password with at least one upper, one lower and one digit.
        """
        if length < 8:
            raise ValueError("Password length should be at least 8 characters.")
        if not Passwords.generator_available(backend):
            raise PreconditionError(f"[Passwords] Secret generator '{backend}' is not available.")

        while True:
            password = Passwords._draw(backend, length)
            if Passwords.validate_password(password):
                log.debug("[Passwords] Generated admin password with backend '{}'", backend)
                return password

    @staticmethod
    def generate_secret_key(backend: str = "python", length: int = SECRET_KEY_LENGTH) -> str:
        if not Passwords.generator_available(backend):
            raise PreconditionError(f"[Passwords] Secret generator '{backend}' is not available.")
        if backend == "openssl":
            return Passwords._openssl_chars(length)
        return secrets.token_urlsafe(length)[:length]

    @staticmethod
    def validate_password(password: str) -> bool:
        """
        Validates the password complexity by checking its length and character types.
        """
        if len(password) < 8:
            return False
        if not any(c.isupper() for c in password):
            return False
        if not any(c.islower() for c in password):
            return False
        if not any(c.isdigit() for c in password):
            return False
        return all(c in Passwords.ALPHABET for c in password)
