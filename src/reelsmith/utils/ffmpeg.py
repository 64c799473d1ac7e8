"""Helpers for locating and invoking the ffmpeg binary."""

import re
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from reelsmith.config import settings
from reelsmith.logging import get_logger

logger = get_logger(__name__)


def resolve_ffmpeg(configured: str | None = None) -> str:
    """Find an ffmpeg executable.

    Order: explicit path (argument or ``FFMPEG_PATH``), ``ffmpeg`` on PATH,
    then the binary bundled with imageio-ffmpeg.

    Raises:
        FileNotFoundError: If no binary can be found.
    """
    explicit = configured or settings.ffmpeg_path
    if explicit:
        if Path(explicit).exists() or shutil.which(explicit):
            return explicit
        raise FileNotFoundError(f"Configured ffmpeg not found: {explicit}")

    on_path = shutil.which("ffmpeg")
    if on_path:
        return on_path

    import imageio_ffmpeg

    try:
        return imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError as e:
        raise FileNotFoundError("ffmpeg not found on PATH or bundled with imageio-ffmpeg") from e


def render_color_clip(
    output_path: Path,
    duration_seconds: float,
    color: str = "black",
    size: str = "320x180",
    fps: int = 30,
    ffmpeg: str | None = None,
    timeout: int = 60,
) -> Path:
    """Render a solid-color H.264/AAC clip with a silent audio track.

    Raises:
        FileNotFoundError: If ffmpeg is not available.
        RuntimeError: If ffmpeg exits with an error.
    """
    binary = ffmpeg or resolve_ffmpeg()
    output_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = [
        binary,
        "-y",
        "-f",
        "lavfi",
        "-i",
        f"color=c={color}:s={size}:r={fps}:d={duration_seconds}",
        "-f",
        "lavfi",
        "-i",
        "anullsrc=channel_layout=stereo:sample_rate=44100",
        "-shortest",
        "-c:v",
        "libx264",
        "-pix_fmt",
        "yuv420p",
        "-c:a",
        "aac",
        str(output_path),
    ]
    result = subprocess.run(cmd, capture_output=True, timeout=timeout)
    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace")[-500:]
        raise RuntimeError(f"ffmpeg color clip failed: {stderr}")

    logger.debug("color_clip_rendered", output_path=str(output_path), color=color)
    return output_path


# Stream lines from `ffmpeg -i` output, e.g.
#   Stream #0:0(und): Video: h264 (High) (avc1 / 0x31637661), yuv420p(progressive),
#       320x180 [SAR 1:1 DAR 16:9], 30 fps, 30 tbr, 15360 tbn
#   Stream #0:1(und): Audio: aac (LC) (mp4a / 0x6134706D), 44100 Hz, stereo, fltp
VIDEO_STREAM = re.compile(
    r"Stream #\d+:\d+.*?: Video: (?P<codec>\w+)[^,]*, (?P<pix_fmt>\w+)(?:\([^)]*\))?, "
    r"(?P<width>\d+)x(?P<height>\d+)"
)
AUDIO_STREAM = re.compile(
    r"Stream #\d+:\d+.*?: Audio: (?P<codec>\w+)[^,]*, (?P<sample_rate>\d+) Hz, "
    r"(?P<layout>[^,]+)"
)
FRAME_RATE = re.compile(r"(?P<value>[\d.]+k?) (?:fps|tbr)\b")
TIME_BASE = re.compile(r"(?P<value>[\d.]+k?) tbn\b")


@dataclass(frozen=True)
class StreamSignature:
    """Codec parameters that must match across inputs for a stream-copy concat."""

    video_codec: str
    width: int
    height: int
    pix_fmt: str
    frame_rate: str | None
    time_base: str | None
    audio_codec: str | None = None
    sample_rate: int | None = None
    channel_layout: str | None = None

    @property
    def has_audio(self) -> bool:
        return self.audio_codec is not None


def parse_stream_signature(stderr: str) -> StreamSignature:
    """Read the first video and audio stream from ``ffmpeg -i`` output.

    Raises:
        RuntimeError: If no video stream is listed
    """
    video = audio = None
    frame_rate = time_base = None
    for line in stderr.splitlines():
        if video is None and (match := VIDEO_STREAM.search(line)):
            video = match
            if rate := FRAME_RATE.search(line):
                frame_rate = rate.group("value")
            if tbn := TIME_BASE.search(line):
                time_base = tbn.group("value")
        elif audio is None and (match := AUDIO_STREAM.search(line)):
            audio = match

    if video is None:
        raise RuntimeError("No video stream found in ffmpeg output")

    return StreamSignature(
        video_codec=video.group("codec"),
        width=int(video.group("width")),
        height=int(video.group("height")),
        pix_fmt=video.group("pix_fmt"),
        frame_rate=frame_rate,
        time_base=time_base,
        audio_codec=audio.group("codec") if audio else None,
        sample_rate=int(audio.group("sample_rate")) if audio else None,
        channel_layout=audio.group("layout").strip() if audio else None,
    )


def read_stream_signature(
    path: Path, ffmpeg: str | None = None, timeout: int = 30
) -> StreamSignature:
    """Describe a media file's streams using ``ffmpeg -i``.

    ffmpeg exits non-zero here because no output is given; only stderr is used.

    Raises:
        FileNotFoundError: If ffmpeg is not available
        RuntimeError: If the file has no readable video stream
        subprocess.TimeoutExpired: If ffmpeg hangs
    """
    binary = ffmpeg or resolve_ffmpeg()
    result = subprocess.run(
        [binary, "-hide_banner", "-i", str(path)],
        capture_output=True,
        timeout=timeout,
    )
    stderr = (result.stderr or b"").decode(errors="replace")
    try:
        return parse_stream_signature(stderr)
    except RuntimeError as e:
        raise RuntimeError(f"{path.name}: {e}: {stderr[-300:]}") from e
