"""
TLS policy for Gold Digger.

Turns the TLS command-line flags into a validation mode, the SSL keyword
arguments understood by ``mysql.connector.connect`` and the security warnings
that must be shown before any network activity.
"""

import logging
import ssl
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, TextIO

from .errors import TlsConfigError
from .models import TlsMode, TlsOptions
from .redaction import redact

PEM_CERTIFICATE_MARKER = "-----BEGIN CERTIFICATE-----"

TLS_FLAG_HINT = (
    "Provide a readable PEM bundle with --tls-ca-file, or for testing only use "
    "--insecure-skip-hostname-verify or --allow-invalid-certificate"
)

SKIP_HOSTNAME_WARNING = (
    "WARNING: TLS hostname verification is disabled (--insecure-skip-hostname-verify). "
    "The certificate chain is still validated, but a valid certificate issued for "
    "another host will be accepted. Use only on trusted networks."
)

ACCEPT_INVALID_WARNING = (
    "WARNING: TLS certificate validation is disabled (--allow-invalid-certificate). "
    "Any certificate is accepted, including expired, self-signed and forged ones; "
    "the connection is encrypted but NOT authenticated. Never use this in production."
)

_tls_provider_ready = False


def initialize_tls_provider() -> None:
    """Process-wide TLS setup. Safe to call more than once."""
    global _tls_provider_ready
    if _tls_provider_ready:
        return
    logging.debug(f"TLS provider: {ssl.OPENSSL_VERSION}")
    _tls_provider_ready = True


def resolve_tls_mode(options: TlsOptions) -> TlsMode:
    """
    Resolve the validation mode from the TLS flags.

    Raises TlsConfigError when more than one mode flag is set.
    """
    flags = options.selected_flags()
    if len(flags) > 1:
        raise TlsConfigError(f"{flags[0]} cannot be used with {' or '.join(flags[1:])}")

    if options.ca_file:
        return TlsMode.CUSTOM_CA
    if options.skip_hostname_verification:
        return TlsMode.SKIP_HOSTNAME_VERIFICATION
    if options.allow_invalid_certificate:
        return TlsMode.ACCEPT_INVALID
    return TlsMode.PLATFORM


def validate_ca_file(path: str) -> None:
    """Check that ``path`` is a readable PEM file with at least one certificate."""
    ca_path = Path(path)
    if not ca_path.is_file():
        raise TlsConfigError(f"CA certificate file not found: {path}. {TLS_FLAG_HINT}")

    try:
        content = ca_path.read_text(encoding='utf-8')
    except UnicodeDecodeError as e:
        raise TlsConfigError(
            f"Invalid CA certificate format in {path}: not a PEM file. {TLS_FLAG_HINT}"
        ) from e
    except OSError as e:
        raise TlsConfigError(
            f"CA certificate file not found: {path} ({e.strerror}). {TLS_FLAG_HINT}"
        ) from e

    if PEM_CERTIFICATE_MARKER not in content:
        raise TlsConfigError(
            f"Invalid CA certificate format in {path}: no PEM certificate found. {TLS_FLAG_HINT}"
        )

    try:
        ssl.create_default_context().load_verify_locations(cafile=str(ca_path))
    except ssl.SSLError as e:
        raise TlsConfigError(
            f"Invalid CA certificate format in {path}: {e}. {TLS_FLAG_HINT}"
        ) from e


def platform_ca_file() -> Optional[str]:
    """CA bundle of the host trust store, if OpenSSL knows of one."""
    return ssl.get_default_verify_paths().cafile


@dataclass(frozen=True)
class TlsPolicy:
    """A resolved TLS validation mode and what it implies for the driver."""
    mode: TlsMode
    ca_file: Optional[str] = None
    warnings: tuple[str, ...] = ()
    ssl_options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_options(cls, options: TlsOptions) -> "TlsPolicy":
        """Build the policy, validating the CA file for the custom CA mode."""
        mode = resolve_tls_mode(options)

        if mode == TlsMode.CUSTOM_CA:
            validate_ca_file(options.ca_file)
            return cls(
                mode=mode,
                ca_file=options.ca_file,
                ssl_options={
                    'ssl_ca': options.ca_file,
                    'ssl_verify_cert': True,
                    'ssl_verify_identity': True,
                },
            )

        if mode == TlsMode.SKIP_HOSTNAME_VERIFICATION:
            ssl_options = {'ssl_verify_cert': True, 'ssl_verify_identity': False}
            return cls(
                mode=mode,
                warnings=(SKIP_HOSTNAME_WARNING,),
                ssl_options=_with_platform_ca(ssl_options),
            )

        if mode == TlsMode.ACCEPT_INVALID:
            return cls(
                mode=mode,
                warnings=(ACCEPT_INVALID_WARNING,),
                ssl_options={'ssl_verify_cert': False, 'ssl_verify_identity': False},
            )

        ssl_options = {'ssl_verify_cert': True, 'ssl_verify_identity': True}
        return cls(mode=mode, ssl_options=_with_platform_ca(ssl_options))

    def describe(self) -> str:
        if self.mode == TlsMode.CUSTOM_CA:
            return f"{self.mode.value} ({self.ca_file})"
        return self.mode.value


def _with_platform_ca(ssl_options: dict[str, Any]) -> dict[str, Any]:
    ca_file = platform_ca_file()
    if ca_file:
        return {'ssl_ca': ca_file, **ssl_options}
    return ssl_options


def render_security_warnings(warnings: tuple[str, ...]) -> str:
    """Render warnings as diagnostic text, one per line."""
    return ''.join(f"{redact(warning)}\n" for warning in warnings)


def display_security_warnings(policy: TlsPolicy, stream: Optional[TextIO] = None) -> None:
    """Write the policy's warnings to stderr regardless of the log level."""
    if not policy.warnings:
        return
    stream = stream or sys.stderr
    stream.write(render_security_warnings(policy.warnings))
    stream.flush()
