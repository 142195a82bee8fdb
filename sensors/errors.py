# sensors/errors.py
"""Fatal acquisition errors, one class per pipeline step that can fail."""


class AcquisitionError(Exception):
    """Base class: the acquisition thread ends, the UI keeps running."""


class NoBleStackError(AcquisitionError):
    pass


class NoAdapterError(AcquisitionError):
    pass


class ScanFailedError(AcquisitionError):
    pass


class NoSensorError(AcquisitionError):
    pass


class ConnectFailedError(AcquisitionError):
    pass


class DiscoverFailedError(AcquisitionError):
    pass


class NoCharacteristicError(AcquisitionError):
    pass


class SubscribeFailedError(AcquisitionError):
    pass


class ChannelClosed(Exception):
    """The UI side of the sample channel has gone away."""
