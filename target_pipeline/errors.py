"""Failure taxonomy for the landing-target pipeline."""


class TrackerError(Exception):
    pass


class CalibrationError(TrackerError):
    pass


class CalibrationUnavailable(CalibrationError):
    """The calibration source could not be opened."""


class CalibrationIncomplete(CalibrationError):
    """The calibration source opened but lacks the matrix or distortion terms."""


class DecodeFailure(TrackerError):
    """An incoming image message could not be turned into a BGR8 frame."""


class PoseSolveFailure(TrackerError):
    """The PnP solve did not produce a usable pose for one marker."""
