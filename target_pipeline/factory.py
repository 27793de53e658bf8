from .strategies.annotate import MarkerAnnotator
from .strategies.detect_aruco import ArucoDetect
from .strategies.localize_pnp import PnPLocalize


class StrategyFactory:
    @staticmethod
    def from_config(config, calibration=None):
        det = ArucoDetect(getattr(config, "aruco_dict", "4x4_250"))

        # No calibration means detect-only: nothing to solve against
        loc = None
        if calibration is not None:
            loc = PnPLocalize(calibration, getattr(config, "pnp_method", "iterative"))

        ann = MarkerAnnotator(draw_header=getattr(config, "draw_header", True))
        return det, loc, ann
