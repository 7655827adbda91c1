# =============================================================================
# Configuration Management
# =============================================================================
# Handles loading, saving, and validating Hawk-Mailer configuration.
#
# XDG Base Directory Compliance (https://specifications.freedesktop.org/basedir-spec/):
#   - Config:  $XDG_CONFIG_HOME/hawk-mailer/  (default: ~/.config/hawk-mailer/)
#
# Files:
#   - config.toml: Transport selection, composer options, SMTP server
#
# SMTP passwords may live in the config file, but the preferred place is the
# system keyring (service "hawk-mailer:<smtp host>", user = SMTP username).
# =============================================================================

import logging
import os
import tomllib  # Built into Python 3.11+
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import keyring
import keyring.errors
import tomli_w  # For writing TOML (tomllib is read-only)

from hawk_mailer.core import ConfigurationError
from hawk_mailer.transport import TRANSPORTS, Transport

logger = logging.getLogger(__name__)


# =============================================================================
# XDG Directory Management
# =============================================================================

# Application identifier used in all XDG paths
APP_NAME = "hawk-mailer"

# Accepted values for the SMTP encryption setting
ENCRYPTIONS = ("", "ssl", "tls")


def get_xdg_config_home() -> Path:
    """
    Returns the XDG config directory for Hawk-Mailer.

    Respects $XDG_CONFIG_HOME if set, otherwise uses ~/.config/hawk-mailer/
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / APP_NAME


# =============================================================================
# Configuration Data Structures
# =============================================================================

@dataclass
class GeneralConfig:
    """
    Transport selection and composer options.

    Attributes:
        protocol: Transport to use: "mail", "sendmail" or "smtp".
        user_agent: Value of the User-Agent and X-Mailer headers.
        wordwrap: Column limit for word-wrapped HTML (RFC 2045: 76).
        multipart: Send HTML as multipart/alternative with a text fallback.
                   Some webmail providers dislike these.
        mailpath: Path of the sendmail executable.
    """
    protocol: str = "mail"
    user_agent: str = APP_NAME
    wordwrap: int = 76
    multipart: bool = True
    mailpath: str = "/usr/sbin/sendmail"


@dataclass
class SMTPConfig:
    """
    SMTP server settings.

    Attributes:
        host: SMTP server hostname. Required for the smtp protocol.
        port: Server port. Common ports:
              - 25 for plain SMTP
              - 465 for SMTP over SSL
              - 587 for submission with STARTTLS
        encryption: "" (none), "ssl" (implicit TLS) or "tls" (STARTTLS).
        username: AUTH LOGIN username. Empty disables authentication.
        password: AUTH LOGIN password. Empty means "ask the keyring".
        timeout: Connect timeout in seconds.
        dsn: Request delivery status notifications on RCPT TO.
        helo_name: Name announced in HELO. Defaults to the local FQDN.
    """
    host: str = ""
    port: int = 25
    encryption: str = ""
    username: str = ""
    password: str = field(default="", repr=False)
    timeout: float = 5
    dsn: bool = False
    helo_name: str = ""

    @property
    def auth(self) -> bool:
        """Authentication is on whenever a username is configured."""
        return bool(self.username)

    @property
    def keyring_service(self) -> str:
        """
        Service name used for keyring password storage:
            keyring set hawk-mailer:smtp.example.com user@example.com
        """
        return f"{APP_NAME}:{self.host}"

    def resolve_password(self) -> str | None:
        """The configured password, or the one stored in the keyring."""
        if self.password:
            return self.password
        try:
            return keyring.get_password(self.keyring_service, self.username)
        except keyring.errors.KeyringError as e:
            logger.warning(f"Keyring lookup for {self.username} failed: {e}")
            return None


@dataclass
class Config:
    """
    Main configuration container for Hawk-Mailer.

    Attributes:
        general: Transport selection and composer options.
        smtp: SMTP server settings.

    Usage:
        >>> config = Config.load()
        >>> transport = config.transport()
        >>> transport.send(message)
    """
    general: GeneralConfig = field(default_factory=GeneralConfig)
    smtp: SMTPConfig = field(default_factory=SMTPConfig)

    # -------------------------------------------------------------------------
    # File Paths
    # -------------------------------------------------------------------------

    @staticmethod
    def config_file_path() -> Path:
        """Returns the path to the main config file."""
        return get_xdg_config_home() / "config.toml"

    # -------------------------------------------------------------------------
    # Loading and Saving
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """
        Load configuration from the config file.

        If the config file doesn't exist, returns default configuration.

        Args:
            path: Config file to read. Defaults to the XDG location.

        Returns:
            Loaded Config object.

        Raises:
            ConfigError: If the config file exists but is invalid.
        """
        config_path = path or cls.config_file_path()

        if not config_path.exists():
            # No config file yet - return defaults
            return cls()

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config file: {e}") from e

        return cls._from_dict(data)

    def save(self, path: Path | None = None) -> None:
        """
        Save configuration to the config file.

        Creates the config directory if it doesn't exist.
        """
        config_path = path or self.config_file_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "wb") as f:
            tomli_w.dump(self._to_dict(), f)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """
        Create a Config object from a dictionary (parsed TOML).
        """
        general = data.get("general", {})
        wordwrap = general.get("wordwrap", 76)
        if isinstance(wordwrap, bool) or not isinstance(wordwrap, int):
            # "wordwrap = true/false" means "use the RFC default"
            wordwrap = 76

        config = cls(
            general=GeneralConfig(
                protocol=general.get("protocol", "mail"),
                user_agent=general.get("user_agent", APP_NAME),
                wordwrap=wordwrap,
                multipart=general.get("multipart", True),
                mailpath=general.get("mailpath", "/usr/sbin/sendmail"),
            ),
        )

        smtp = data.get("smtp", {})
        config.smtp = SMTPConfig(
            host=smtp.get("host", ""),
            port=smtp.get("port", 25),
            encryption=smtp.get("encryption", ""),
            username=smtp.get("username", ""),
            password=smtp.get("password", ""),
            timeout=smtp.get("timeout", 5),
            dsn=smtp.get("dsn", False),
            helo_name=smtp.get("helo_name", ""),
        )

        config.validate()
        return config

    def _to_dict(self) -> dict[str, Any]:
        """
        Convert Config to a dictionary for TOML serialization.
        """
        data: dict[str, Any] = {}

        data["general"] = {
            "protocol": self.general.protocol,
            "user_agent": self.general.user_agent,
            "wordwrap": self.general.wordwrap,
            "multipart": self.general.multipart,
            "mailpath": self.general.mailpath,
        }

        data["smtp"] = {
            "host": self.smtp.host,
            "port": self.smtp.port,
            "encryption": self.smtp.encryption,
            "username": self.smtp.username,
            "timeout": self.smtp.timeout,
            "dsn": self.smtp.dsn,
            "helo_name": self.smtp.helo_name,
        }
        # Only write a password that was in the file to begin with
        if self.smtp.password:
            data["smtp"]["password"] = self.smtp.password

        return data

    def validate(self) -> None:
        """
        Check settings that would otherwise fail late, at send time.

        Raises:
            ConfigError: Unknown protocol or encryption, or the smtp protocol
                         without a host.
        """
        if self.general.protocol not in TRANSPORTS:
            raise ConfigError(
                f"Unknown protocol {self.general.protocol!r} "
                f"(expected one of: {', '.join(TRANSPORTS)})"
            )
        if self.smtp.encryption not in ENCRYPTIONS:
            raise ConfigError(f"Unknown SMTP encryption {self.smtp.encryption!r}")
        if self.general.protocol == "smtp" and not self.smtp.host:
            raise ConfigError("SMTP protocol selected but no SMTP host configured")

    def transport(self, **kwargs: Any) -> Transport:
        """
        Build the transport selected by general.protocol.

        Keyword arguments are passed to the transport's constructor.
        """
        self.validate()
        return TRANSPORTS[self.general.protocol](self, **kwargs)


# =============================================================================
# Exceptions
# =============================================================================

class ConfigError(ConfigurationError):
    """Raised when there's an error loading or parsing configuration."""
    pass


# =============================================================================
# Utility Functions
# =============================================================================

def print_paths() -> None:
    """
    Print the config paths for debugging.
    Useful for users wondering where their config is stored.
    """
    print(f"Config:       {get_xdg_config_home()}")
    print(f"Config file:  {Config.config_file_path()}")
