"""Operator entry point for inspecting and overriding calibration caches."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from .errors import CalibrationError, ConfigurationError
from .quantization.config import load_calibration_config
from .quantization.scales import export_scale_file
from .quantization.session import ReplayCalibrationSession
from .utils import create_logger

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage the INT8 calibration cache of a model.")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("configs/quantization/ptq.yaml"),
        help="Path to the calibration YAML.",
    )
    parser.add_argument("--scale-file", type=Path, default=None, help="Scale overrides to install.")
    parser.add_argument(
        "--export-scales",
        type=Path,
        default=None,
        help="Write the cached scales as an editable name:scale file.",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Optional log file.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logger = create_logger("int8_calib", args.log_file)

    try:
        cfg = load_calibration_config(args.config)
    except (OSError, ConfigurationError) as exc:
        logger.error("Invalid calibration config %s: %s", args.config, exc)
        return EXIT_CONFIG

    scale_file = args.scale_file or cfg.scale_file
    with ReplayCalibrationSession(
        cfg.cache_path, cfg.algorithm, cfg.batch_size, quantile=cfg.quantile
    ) as session:
        logger.info(
            "Calibration cache %s (algorithm=%s, batch_size=%d)",
            session.cache_path,
            session.get_algorithm().name.lower(),
            session.get_batch_size(),
        )
        if scale_file is not None:
            try:
                installed = session.set_scale_file(scale_file)
            except CalibrationError as exc:
                logger.error("Rejected scale file %s: %s", scale_file, exc)
                return EXIT_FAILED
            if not installed:
                return EXIT_FAILED

        cache = session.read_calibration_cache()
        if cache is None:
            logger.info("No calibration cache present yet.")
        else:
            logger.info("Calibration cache holds %d bytes.", len(cache))

        if args.export_scales is not None:
            try:
                exported = export_scale_file(session.cache_path, args.export_scales)
            except CalibrationError as exc:
                logger.error("Could not decode %s: %s", session.cache_path, exc)
                return EXIT_FAILED
            if not exported:
                return EXIT_FAILED

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
