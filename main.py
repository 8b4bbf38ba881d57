import cv2
import numpy as np

from vision_detect_track import CallableBackend, DetectionPipeline, RawDetectionBatch
from vision_detect_track.core.overlay import annotate_tracks
from vision_detect_track.utils.config import create_test_config
from vision_detect_track.utils.utils import create_test_frame, format_detection_results, setup_logging, Timer
from vision_detect_track.utils.exceptions import VisionTrackError

NUM_ANCHORS = 10


def contour_detector(crop: np.ndarray) -> RawDetectionBatch:
    """
    Stand-in for a model runtime: every bright blob in the crop becomes an anchor.

    Boxes are encoded in the layout the packaged SSD model emits, so that the
    decoder's [b1, b2, b3, b0] reading yields (left, top, right, bottom).
    """
    size = crop.shape[0]
    gray = cv2.cvtColor(crop, cv2.COLOR_BGR2GRAY)
    _, mask = cv2.threshold(gray, 10, 255, cv2.THRESH_BINARY)
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    locations = np.zeros((NUM_ANCHORS, 4), dtype=np.float32)
    scores = np.zeros(NUM_ANCHORS, dtype=np.float32)
    for i, contour in enumerate(contours[:NUM_ANCHORS]):
        x, y, w, h = cv2.boundingRect(contour)
        locations[i] = [(y + h) / size, x / size, y / size, (x + w) / size]
        scores[i] = 0.9

    return RawDetectionBatch(locations, scores, class_ids=np.zeros(NUM_ANCHORS), count=len(contours))


def run_demo(show_images: bool = False):
    """Push a few synthetic frames through the pipeline and print the tracks."""
    logger = setup_logging(verbose=True)
    config = create_test_config()

    with DetectionPipeline(
        CallableBackend(contour_detector, name="contours"),
        config=config,
        status_callback=lambda status: logger.info(
            f"Frame {status.frame_info}, crop {status.crop_info}, inference {status.inference_time}"
        ),
        error_callback=lambda message: logger.warning(f"Notice: {message}"),
    ) as pipeline:
        width, height = pipeline.get_desired_preview_size()
        pipeline.on_preview_size_chosen(width, height, rotation=0)

        for step in range(5):
            offset = 20 * step
            frame = create_test_frame(
                boxes=[(80 + offset, 60, 240 + offset, 220), (360, 200 + offset, 560, 400 + offset)],
                size=(height, width),
            )

            with Timer(f"Frame {step}", logger):
                accepted = pipeline.process_image(frame)
                pipeline.wait_until_idle(timeout=5.0)

            logger.info(f"Frame {step} accepted: {accepted}")
            tracks = pipeline.get_tracks()
            logger.info(format_detection_results(list(tracks)))

            if show_images:
                cv2.imshow("tracks", annotate_tracks(frame, tracks, config.annotation))
                cv2.waitKey(500)

        logger.info(f"Pipeline stats: {pipeline.get_stats()}")

    if show_images:
        cv2.destroyAllWindows()


def main():
    logger = setup_logging(verbose=True)
    try:
        run_demo()
    except KeyboardInterrupt:
        logger.info("Demo interrupted by user")
    except VisionTrackError as e:
        logger.error(f"Pipeline error: {e}")


if __name__ == "__main__":
    main()
