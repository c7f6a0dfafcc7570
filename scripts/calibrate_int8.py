"""Inspect or override the INT8 calibration cache described by a PTQ config."""

from __future__ import annotations

from int8_calib.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
