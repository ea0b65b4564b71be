#!/usr/bin/env python3
"""
CLI tool to detect the scenes of a video file without the server or database.

Usage:
    python scripts/detect_scenes_cli.py <video_path> [--threshold 0.3] [--output <file>] [--split-dir <dir>]

Example:
    python scripts/detect_scenes_cli.py ~/Videos/trailer.mp4 --output scenes.json
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from scenecut.errors import SceneCutError
from scenecut.pipeline.cutter import split_scenes
from scenecut.pipeline.segmentation import build_scenes
from scenecut.models.scene import Scene
from scenecut.utils.ffmpeg import detect_scenes, get_video_info


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger(__name__)


async def analyze_video(
    video_path: Path,
    threshold: float = None,
    output_file: Path = None,
    split_dir: Path = None,
):
    """
    Detect scenes of a video file and report them.

    Args:
        video_path: Path to video file
        threshold: Scene change threshold override
        output_file: Where to write the scene list as JSON (stdout if None)
        split_dir: If given, also write one file per scene there
    """
    if not video_path.exists():
        raise FileNotFoundError(f"Video not found: {video_path}")

    logger.info(f"Analyzing: {video_path}")
    video_info = await get_video_info(video_path)
    logger.info(
        f"Duration: {video_info.duration:.1f}s, Resolution: {video_info.width}x{video_info.height}, "
        f"FPS: {video_info.fps:.2f}"
    )

    boundaries = await detect_scenes(video_path, video_info.duration, threshold=threshold)
    segments = build_scenes(boundaries, video_info.fps)
    logger.info(f"Found {len(segments)} scenes from {len(boundaries)} boundaries")

    payload = {
        "video_path": str(video_path),
        "video_info": video_info.to_dict(),
        "boundaries": boundaries,
        "total_scenes": len(segments),
        "scenes": [
            {
                "index": seg.index,
                "start_time": seg.start,
                "end_time": seg.end,
                "duration": seg.duration,
                "start_timestamp": seg.start_timestamp,
                "end_timestamp": seg.end_timestamp,
                "frame_count": seg.frame_count,
            }
            for seg in segments
        ],
    }

    if output_file:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, 'w') as f:
            json.dump(payload, f, indent=2)
        logger.info(f"Scene list written to: {output_file}")
    else:
        print(json.dumps(payload, indent=2))

    if split_dir:
        scenes = [
            Scene(
                scene_index=seg.index,
                start_time=seg.start,
                end_time=seg.end,
                duration=seg.duration,
                start_timestamp=seg.start_timestamp,
                end_timestamp=seg.end_timestamp,
                frame_count=seg.frame_count,
            )
            for seg in segments
        ]
        result = await split_scenes(video_path, scenes, split_dir)
        logger.info(
            f"Split {result.succeeded_count}/{result.requested_count} scenes into {result.output_directory}"
        )


def main():
    parser = argparse.ArgumentParser(
        description="Detect the scenes of a video file with SceneCut",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Print the scene list
    python scripts/detect_scenes_cli.py video.mp4

    # More sensitive detection, saved to a file
    python scripts/detect_scenes_cli.py video.mp4 --threshold 0.2 --output scenes.json

    # Also cut one file per scene
    python scripts/detect_scenes_cli.py video.mp4 --split-dir ./split
        """
    )

    parser.add_argument(
        "video_path",
        type=Path,
        help="Path to video file to analyze"
    )

    parser.add_argument(
        "--threshold", "-t",
        type=float,
        default=None,
        help="Scene change threshold between 0 and 1 (default: from settings)"
    )

    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=None,
        help="Write the scene list to this JSON file instead of stdout"
    )

    parser.add_argument(
        "--split-dir",
        type=Path,
        default=None,
        help="Write one stream-copied file per scene into this directory"
    )

    args = parser.parse_args()

    try:
        asyncio.run(analyze_video(
            video_path=args.video_path,
            threshold=args.threshold,
            output_file=args.output,
            split_dir=args.split_dir,
        ))
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)
    except SceneCutError as e:
        logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
