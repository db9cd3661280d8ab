"""Eyeblow: live camera view with face/eye effects driven by Haar cascades.

Keys:
  b  magnify the primary eye       k  eye-slit masks
  f  outline faces                 r  freeze display
  e  outline eyes                  x  mirror input
  m  outline mouths                d  mouth detection
  t / F12  fullscreen              q / Esc  quit
"""

import argparse
import logging
import sys
import threading
from pathlib import Path

from eyeblow.config import (
  DEFAULT_CAPTURE_WIDTH,
  DEFAULT_MIN_NEIGHBORS,
  DEFAULT_SCALE,
  DEFAULT_TICK_INTERVAL_MS,
  EYE_CASCADE_PATH,
  FACE_CASCADE_PATH,
  MOUTH_CASCADE_PATH,
  QUIT_KEYS,
  WINDOW_NAME,
  Configuration,
  ConfigurationState,
  normalize_key,
)
from eyeblow.detectors.base import EYE, FACE, MOUTH, ClassParams
from eyeblow.detectors.haar import HaarDetector
from eyeblow.loop import FrameLoop
from eyeblow.video.display import OpenCVDisplay
from eyeblow.video.frame_grabber import FrameGrabber

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("eyeblow")


def parse_args(argv=None):
  p = argparse.ArgumentParser(description="Eyeblow: realtime face/eye effects (Haar)")
  p.add_argument("--camera", type=int, default=0, help="Camera index (default 0)")
  p.add_argument("--width", type=int, default=DEFAULT_CAPTURE_WIDTH, help="Downscale captured frames to this width (0 = off)")
  p.add_argument("--interval", type=int, default=DEFAULT_TICK_INTERVAL_MS, help="Milliseconds between processed frames")
  p.add_argument("--scale", type=float, default=DEFAULT_SCALE, help="scaleFactor for every cascade")
  p.add_argument("--neighbors", type=int, default=DEFAULT_MIN_NEIGHBORS, help="minNeighbors for every cascade")
  p.add_argument("--face-cascade", type=Path, default=FACE_CASCADE_PATH)
  p.add_argument("--eye-cascade", type=Path, default=EYE_CASCADE_PATH)
  p.add_argument("--mouth-cascade", type=Path, default=MOUTH_CASCADE_PATH)
  p.add_argument("--windowed", action="store_true", help="Start in a window instead of fullscreen")
  p.add_argument("--no-mirror", action="store_true", help="Show the camera image unmirrored")
  p.add_argument("--detect-mouths", action="store_true", help="Run the mouth cascade from the start")
  p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
  return p.parse_args(argv)


def build_configuration(args) -> Configuration:
  base = Configuration()
  def params(p: ClassParams) -> ClassParams:
    return ClassParams(p.min_size_ratio, args.scale, args.neighbors)
  return Configuration(
    fullscreen=not args.windowed,
    mirror_input=not args.no_mirror,
    detect_mouths=args.detect_mouths,
    tick_interval_ms=args.interval,
    face_params=params(base.face_params),
    eye_params=params(base.eye_params),
    mouth_params=params(base.mouth_params),
  )


def load_detectors(args):
  """Face and eye cascades are required, the mouth cascade is optional."""
  detectors = {
    FACE: HaarDetector(args.face_cascade),
    EYE: HaarDetector(args.eye_cascade),
  }
  try:
    detectors[MOUTH] = HaarDetector(args.mouth_cascade)
  except (FileNotFoundError, RuntimeError) as e:
    logger.warning("Mouth detection unavailable: %s", e)
  return detectors


def main(argv=None):
  args = parse_args(argv)
  logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

  state = ConfigurationState(build_configuration(args))
  try:
    detectors = load_detectors(args)
    grabber = FrameGrabber(args.camera, args.width)
  except (FileNotFoundError, RuntimeError) as e:
    logger.error("%s", e)
    sys.exit(1)

  display = None
  try:
    display = OpenCVDisplay(WINDOW_NAME, fullscreen=state.snapshot().fullscreen)
    run(FrameLoop(grabber.start(), detectors, display, state), display, state)
  finally:
    grabber.stop()
    if display is not None:
      display.close()


def run(loop: FrameLoop, display, state: ConfigurationState):
  """Tick until a quit key is pressed or the window is closed."""
  stop = threading.Event()

  def on_idle(ms: int):
    key = display.poll_key(ms)
    if normalize_key(key) in QUIT_KEYS or not display.is_open():
      stop.set()
      return
    if state.handle_key(key) == "fullscreen":
      display.set_fullscreen(state.snapshot().fullscreen)

  loop.run(stop, idle=on_idle)


if __name__ == "__main__":  # pragma: no cover (manual run)
  main()
