"""Registration controller and remote config source."""

from checkin.registration.config_source import RemoteConfigSource
from checkin.registration.controller import ConnectionMode, ConnectOutcome, RegistrationController

__all__ = ["ConnectOutcome", "ConnectionMode", "RegistrationController", "RemoteConfigSource"]
