"""Outbound email (SMTP) configuration."""

import os
from dataclasses import dataclass

from .environment import env_flag


@dataclass
class EmailConfig:
    """SMTP settings used by the notifier."""

    host: str = ""
    port: int = 0
    user: str = ""
    password: str = ""
    from_address: str = ""
    use_tls: bool = None
    dont_send: bool = None
    redirect_to: str = ""
    timeout: float = 30.0

    def __post_init__(self):
        """Load settings from environment if not provided."""
        if not self.host:
            self.host = os.environ.get('EMAIL_HOST', 'smtp.gmail.com')
        if not self.port:
            self.port = int(os.environ.get('EMAIL_PORT', '587'))
        if not self.user:
            self.user = os.environ.get('EMAIL_USER', '')
        if not self.password:
            self.password = os.environ.get('EMAIL_PASSWORD', '')
        if not self.from_address:
            self.from_address = os.environ.get('EMAIL_FROM', '') or self.user
        if self.use_tls is None:
            self.use_tls = env_flag('EMAIL_USE_TLS', default=True)
        if self.dont_send is None:
            self.dont_send = env_flag('EMAIL_DONT_SEND', default=False)
        if not self.redirect_to:
            self.redirect_to = os.environ.get('EMAIL_REDIRECT_TO', '')

    def validate(self) -> bool:
        """Validate the configuration."""
        if self.dont_send:
            return True
        if not self.host:
            raise ValueError("EMAIL_HOST environment variable is required")
        if not self.from_address:
            raise ValueError("EMAIL_FROM or EMAIL_USER environment variable is required")
        return True
