import re
from dataclasses import dataclass


class NamingError(ValueError):
    """Raised when a name cannot be made to satisfy a resource type's rules."""


@dataclass(frozen=True)
class NameRule:
    """
    Naming constraints for one Azure resource type.

    Attributes:
        label: Resource type label used in error messages.
        min_len / max_len: Inclusive length bounds.
        allowed: Regex character class (without brackets) of permitted characters.
        lowercase: Whether the name is forced to lowercase.
        separator: Character used to join name parts ("" for none).
        must_start_alpha: Whether the first character must be a letter.
    """
    label: str
    min_len: int
    max_len: int
    allowed: str
    lowercase: bool = True
    separator: str = "-"
    must_start_alpha: bool = False


RESOURCE_GROUP = NameRule("resource group", 1, 90, r"a-zA-Z0-9\-_.()", lowercase=False)
WEB_APP = NameRule("web app", 2, 60, r"a-z0-9\-")
POSTGRES_SERVER = NameRule("postgres server", 3, 63, r"a-z0-9\-", must_start_alpha=True)
POSTGRES_DATABASE = NameRule("postgres database", 1, 63, r"a-z0-9_", separator="_", must_start_alpha=True)
STORAGE_ACCOUNT = NameRule("storage account", 3, 24, r"a-z0-9", separator="")
KEY_VAULT = NameRule("key vault", 3, 24, r"a-zA-Z0-9\-", must_start_alpha=True)
APP_INSIGHTS = NameRule("app insights", 1, 255, r"a-zA-Z0-9\-_.()")
APP_SERVICE_PLAN = NameRule("app service plan", 1, 40, r"a-zA-Z0-9\-")


class Sanitization:
    """
    Utility class to sanitize names for different Azure resource types
    by removing or replacing invalid characters.
    """

    @staticmethod
    def clean(value: str, rule: NameRule) -> str:
        """
        Normalize one name part: lowercase when required, replace invalid characters with the
        rule's separator, collapse repeated separators and strip them from both ends.
        """
        if not isinstance(value, str):
            raise TypeError("Sanitization.clean: input must be a string")

        if rule.lowercase:
            value = value.lower()

        sep = rule.separator
        value = re.sub(f"[^{rule.allowed}]", sep, value)
        if sep:
            value = re.sub(f"{re.escape(sep)}{{2,}}", sep, value)
            value = value.strip(sep)
        return value

    @staticmethod
    def fit(rule: NameRule, *parts: str, suffix: str = "") -> str:
        """
        Join name parts with the rule's separator and append `suffix`, truncating the base
        so the suffix survives intact within the rule's maximum length.

        Raises:
            NamingError: If the result still violates the rule.
        """
        sep = rule.separator
        cleaned = [Sanitization.clean(p, rule) for p in parts]
        base = sep.join(p for p in cleaned if p)
        tail = Sanitization.clean(suffix, rule) if suffix else ""

        if tail:
            room = rule.max_len - len(tail) - len(sep)
            if room < 1:
                raise NamingError(f"[{rule.label}] suffix '{tail}' leaves no room for a base name")
            base = base[:room]
            if sep:
                base = base.rstrip(sep)
            name = f"{base}{sep}{tail}" if base else tail
        else:
            name = base[:rule.max_len]
            if sep:
                name = name.rstrip(sep)

        Sanitization.validate(name, rule)
        return name

    @staticmethod
    def validate(name: str, rule: NameRule) -> str:
        """
        Check a final name against a rule.

        Returns:
            str: The name, unchanged.

        Raises:
            NamingError: On any violation.
        """
        if not rule.min_len <= len(name) <= rule.max_len:
            raise NamingError(
                f"[{rule.label}] '{name}' must be {rule.min_len}-{rule.max_len} characters long"
            )
        if not re.fullmatch(f"[{rule.allowed}]+", name):
            raise NamingError(f"[{rule.label}] '{name}' contains characters outside [{rule.allowed}]")
        if rule.must_start_alpha and not name[0].isalpha():
            raise NamingError(f"[{rule.label}] '{name}' must start with a letter")
        if rule.separator and (name.startswith(rule.separator) or name.endswith(rule.separator)):
            raise NamingError(f"[{rule.label}] '{name}' must not start or end with '{rule.separator}'")
        if rule is KEY_VAULT and "--" in name:
            raise NamingError(f"[{rule.label}] '{name}' must not contain consecutive hyphens")
        if rule is RESOURCE_GROUP and name.endswith("."):
            raise NamingError(f"[{rule.label}] '{name}' must not end with a period")
        return name

    @staticmethod
    def purge(secret_key: str) -> str:
        """
        Purges a secret key by removing everything except alphanumeric characters and hyphens,
        and converts all characters to lowercase. Key Vault secret names allow nothing else.
        """
        return re.sub(r"[^a-zA-Z0-9\-]", "", secret_key).lower()


fit = Sanitization.fit
purge = Sanitization.purge
validate = Sanitization.validate
