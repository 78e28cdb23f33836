"""
Offline video analysis tool
Runs a video through the tracking pipeline, records one window and exports it
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional
from tqdm import tqdm

from core.session import TrackingSession
from utils.exceptions import BaseAnalysisError, DetectorInitError

logger = logging.getLogger(__name__)

async def analyze(
    video_path: str,
    subject_id: str,
    start_ms: float,
    backend: Optional[str] = None,
    output: Optional[str] = None,
    csv_output: Optional[str] = None
) -> str:
    """
    Analyze one video file

    Args:
        video_path: input video
        subject_id: subject code written into every record
        start_ms: source time at which the recording window opens
        backend: detector back-end
        output: JSON output path (generated if omitted)
        csv_output: optional CSV output path

    Returns:
        Path of the JSON export
    """
    session = TrackingSession.create(backend, use_source_time=True)
    try:
        source = session.open_video(video_path)
        total = getattr(source, "info", {}).get("frame_count") or None
        with tqdm(total=total, desc="Processing frames", unit="frame") as progress:
            await session.run_offline(
                subject_id, record_from_ms=start_ms,
                on_frame=lambda _: progress.update(1)
            )
        json_path = session.export_json(output)
        if csv_output:
            session.export_csv(csv_output)
        return json_path
    finally:
        await session.close()

def main():
    parser = argparse.ArgumentParser(description='Measure hip abduction angles in a video and export a recording window')
    parser.add_argument('video', help='input video path')
    parser.add_argument('-s', '--subject', required=True, help='subject code (1-10 letters, digits, _ or -)')
    parser.add_argument('-t', '--start', type=float, default=0.0, help='recording start in source time (ms)')
    parser.add_argument('-b', '--backend', choices=['mediapipe', 'rtmpose'], default=None, help='pose detector back-end')
    parser.add_argument('-o', '--output', default=None, help='JSON output path')
    parser.add_argument('--csv', default=None, help='also write a CSV file')
    parser.add_argument('-v', '--verbose', action='store_true', help='debug logging')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    try:
        path = asyncio.run(analyze(
            args.video, args.subject, args.start,
            backend=args.backend, output=args.output, csv_output=args.csv
        ))
    except DetectorInitError as e:
        logger.error(f"Detector setup failed: {e}")
        return 2
    except BaseAnalysisError as e:
        logger.error(f"Analysis failed: {e}")
        return 1

    print(path)
    return 0

if __name__ == "__main__":
    sys.exit(main())
