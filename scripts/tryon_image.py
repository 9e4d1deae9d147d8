from __future__ import annotations

import argparse
import os
import sys

import cv2

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from arinails_tryon.app import configure_logging, load_designs, make_provider_factory, make_selection  # noqa: E402
from arinails_tryon.config import add_args, config_from_args, TryOnConfig, default_api_url  # noqa: E402
from arinails_tryon.renderer import NailOverlayRenderer  # noqa: E402


def main() -> int:
    ap = argparse.ArgumentParser(description="Apply a nail design to a still photo.")
    ap.add_argument("--image", required=True, help="Path to input image")
    ap.add_argument("--out", required=True, help="Path to output image (with overlays)")
    add_args(ap, TryOnConfig(api_url=default_api_url()))
    args = ap.parse_args()
    config = config_from_args(args)
    configure_logging(config.log_level)

    frame = cv2.imread(args.image)
    if frame is None:
        raise RuntimeError(f"Could not read image: {args.image}")

    designs = load_designs(config)
    if not designs:
        raise RuntimeError("No designs available")

    with make_selection(config, designs) as selection:
        if not selection.wait(timeout=30):
            raise RuntimeError(f"Could not load design {selection.selected.title}: {selection.last_error}")

        with make_provider_factory(config, static_image_mode=True)() as provider:
            renderer = NailOverlayRenderer(
                provider,
                width_ratio=config.nail_width_ratio,
                height_ratio=config.nail_height_ratio,
                show_landmarks=config.show_landmarks,
            )
            drawn = renderer.render(frame, selection.image, 0)

    ok = cv2.imwrite(args.out, renderer.surface.buffer)
    if not ok:
        raise RuntimeError(f"Could not write output image: {args.out}")

    print(f"design: {selection.selected.title}")
    print(f"hands: {len(renderer.last_hands)} overlays: {drawn}")
    for i, h in enumerate(renderer.last_hands):
        print(f"[{i}] {h.handedness_label} score={h.handedness_score}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
