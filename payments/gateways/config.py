"""
Gateway configuration.

Built once from Django settings and handed to the resolver and to every
port driver it creates.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from django.conf import settings


@dataclass(frozen=True)
class GatewayConfig:
    """
    Read-only configuration shared by the resolver and port drivers.

    Attributes:
        ports: Credentials and endpoints per port, keyed by lower-case port name
        default_port: Port used when none is named explicitly
        callback_url: Fallback callback URL for ports without their own
        request_timeout: Timeout (seconds) for outbound gateway calls
        pending_expiry_minutes: Age after which pending transactions are expired
    """
    ports: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    default_port: Optional[str] = None
    callback_url: Optional[str] = None
    request_timeout: int = 30
    pending_expiry_minutes: int = 30

    @classmethod
    def from_settings(cls) -> 'GatewayConfig':
        """
        Build configuration from the PAYMENT_GATEWAYS setting.

        Example:
            PAYMENT_GATEWAYS = {
                'DEFAULT_PORT': 'NOVINPAL',
                'CALLBACK_URL': 'https://example.com/api/payments/callback/',
                'PORTS': {
                    'NOVINPAL': {'api_key': '...'},
                },
            }
        """
        options = getattr(settings, 'PAYMENT_GATEWAYS', {}) or {}
        ports = {
            name.lower(): dict(values or {})
            for name, values in (options.get('PORTS') or {}).items()
        }
        return cls(
            ports=ports,
            default_port=options.get('DEFAULT_PORT'),
            callback_url=options.get('CALLBACK_URL'),
            request_timeout=int(options.get('REQUEST_TIMEOUT', 30)),
            pending_expiry_minutes=int(options.get('PENDING_EXPIRY_MINUTES', 30)),
        )

    def for_port(self, port_name: str) -> Dict[str, Any]:
        """Options for a single port (empty dict if not configured)"""
        return self.ports.get(port_name.lower(), {})

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a value by dotted key, e.g. ``novinpal.api_key``.

        Keys without a dot resolve to the top-level attributes.
        """
        if '.' not in key:
            return getattr(self, key, default)

        port_name, option = key.split('.', 1)
        return self.for_port(port_name).get(option, default)
