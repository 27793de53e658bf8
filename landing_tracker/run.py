import argparse
import signal
import sys

from .config import TrackerConfig, load_config
from .worker import TrackerWorker


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Run the ArUco landing-target tracker")
    ap.add_argument("--config", help="Path to JSON/YAML config")

    ap.add_argument("--node-name")
    ap.add_argument("--calib")
    ap.add_argument("--dict")
    ap.add_argument("--pnp-method")
    ap.add_argument("--default-altitude", type=float)
    ap.add_argument("--out")
    ap.add_argument("--duration", type=float)
    ap.add_argument("--max-frames", type=int)
    ap.add_argument("--source", choices=["synthetic", "usb", "video", "images"])
    ap.add_argument("--source-path")
    ap.add_argument("--device")
    ap.add_argument("--altitude", type=float, help="Constant altitude feed (m)")
    ap.add_argument("--altitude-csv", help="Replay altitude from a t,distance CSV")
    ap.add_argument("--no-save-annotated", action="store_true")
    ap.add_argument("--no-poses", action="store_true")

    return ap


def _apply_args(cfg: TrackerConfig, args: argparse.Namespace) -> TrackerConfig:
    cfg.apply_overrides(
        node_name=args.node_name,
        calibration_path=args.calib,
        aruco_dict=args.dict,
        pnp_method=args.pnp_method,
        default_altitude_m=args.default_altitude,
        session_root=args.out,
        duration_sec=args.duration,
        max_frames=args.max_frames,
        save_annotated=False if args.no_save_annotated else None,
        write_poses=False if args.no_poses else None,
    )

    if args.source:
        cfg.source.type = args.source
    if args.source_path:
        cfg.source.path = args.source_path
    if args.device is not None:
        cfg.source.device = int(args.device) if args.device.isdigit() else args.device

    if args.altitude_csv:
        cfg.altitude.type = "csv"
        cfg.altitude.path = args.altitude_csv
    elif args.altitude is not None:
        cfg.altitude.type = "constant"
        cfg.altitude.value = args.altitude
    return cfg


def main(argv=None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)

    cfg = load_config(args.config) if args.config else TrackerConfig()
    cfg = _apply_args(cfg, args)

    worker = TrackerWorker(cfg)

    def _handle_signal(_sig, _frame):
        worker.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_signal)

    summary = worker.run()
    print(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
