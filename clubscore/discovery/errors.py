"""Errors raised while standing up an mDNS discovery session."""


class DiscoveryError(Exception):
    """Base class for discovery failures."""


class SessionInitError(DiscoveryError):
    """The local mDNS subsystem could not be started."""


class BrowseError(DiscoveryError):
    """The browse query for the service type could not be issued."""


class AnnounceError(DiscoveryError):
    """The service could not be registered on the network."""
