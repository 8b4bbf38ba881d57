#!/usr/bin/env python3
"""
scripts/detect_video.py

Live detection and tracking on a camera or video file with a TorchScript
detector, drawing the track overlay in an OpenCV window.
"""

import sys
import time

import cv2

from vision_detect_track import DetectionPipeline, TorchScriptBackend, get_default_config
from vision_detect_track.core.overlay import annotate_tracks
from vision_detect_track.utils.exceptions import InferenceUnavailableError, TransformError
from vision_detect_track.utils.utils import format_detection_results


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Live detection and tracking overlay")
    parser.add_argument("--model", default="ssd_mobilenet", help="Model configuration name")
    parser.add_argument("--model-path", default=None, help="TorchScript model file (overrides config)")
    parser.add_argument("--labels", default=None, help="labelmap.txt (overrides config)")
    parser.add_argument("--source", default="0", help="Camera index or video file")
    parser.add_argument("--rotation", type=int, default=0, help="Sensor rotation in degrees")
    parser.add_argument("--threads", type=int, default=1, help="Inference threads")
    parser.add_argument("--gpu", action="store_true", help="Use hardware acceleration")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    config = get_default_config(args.model)
    config.verbose = args.verbose
    config.model.num_threads = args.threads
    config.model.use_hardware_acceleration = args.gpu
    if args.model_path:
        config.model.model_path = args.model_path
    if args.labels:
        config.model.labels_file = args.labels

    try:
        backend = TorchScriptBackend.from_config(config.model)
    except InferenceUnavailableError as e:
        print(f"❌ {e}")
        sys.exit(1)

    source = int(args.source) if args.source.isdigit() else args.source
    capture = cv2.VideoCapture(source)
    if not capture.isOpened():
        print(f"❌ Cannot open source {args.source}")
        sys.exit(1)

    width, height = config.preview.desired_preview_size
    capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
    capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

    try:
        pipeline = DetectionPipeline(
            backend,
            config=config,
            error_callback=lambda message: print(f"⚠️  {message}"),
        )
    except InferenceUnavailableError as e:
        print(f"❌ {e}")
        sys.exit(1)

    with pipeline:
        ok, frame = capture.read()
        if not ok:
            print("❌ No frames from source")
            sys.exit(1)

        try:
            pipeline.on_preview_size_chosen(frame.shape[1], frame.shape[0], args.rotation)
        except TransformError as e:
            print(f"❌ Preview setup failed: {e}")
            sys.exit(1)

        last_report = time.time()
        while ok:
            pipeline.process_image(frame)

            # Read the snapshot once per render pass
            tracks = pipeline.get_tracks()
            annotated = annotate_tracks(frame, tracks, config.annotation)

            status = pipeline.get_status()
            cv2.putText(
                annotated,
                f"{status.frame_info}  {status.crop_info}  {status.inference_time}",
                (10, 20),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.5,
                (255, 255, 255),
                1,
            )
            cv2.imshow("vision_detect_track", annotated)
            if cv2.waitKey(1) & 0xFF == ord("q"):
                break

            if time.time() - last_report >= 5.0:
                print(format_detection_results(list(tracks), max_items=5))
                print(pipeline.get_stats())
                last_report = time.time()

            ok, frame = capture.read()

    capture.release()
    cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
