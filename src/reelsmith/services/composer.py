"""Video composition: download scene clips and join them with ffmpeg.

Clips are joined with the concat demuxer. The first attempt stream-copies,
which is only valid when every clip shares codec parameters. ffmpeg happily
stream-copies mismatched clips into a broken file and still exits 0, so the
clip streams are read and compared first and any difference counts as a
failed attempt. On failure the partial output is removed and the join is
redone with a full re-encode.
"""

import asyncio
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx

from reelsmith.config import settings
from reelsmith.domain.enums import ConcatMode
from reelsmith.exceptions import ClipDownloadError, ConcatenationError, NoValidClipsError
from reelsmith.logging import get_logger
from reelsmith.utils.ffmpeg import read_stream_signature, resolve_ffmpeg

logger = get_logger(__name__)

STDERR_TAIL = 2000


@dataclass(frozen=True)
class ConcatAttempt:
    """One ffmpeg invocation strategy: a mode plus its codec arguments."""

    mode: ConcatMode
    codec_args: tuple[str, ...]
    requires_uniform_inputs: bool = False


@dataclass
class ConcatPolicy:
    """Ordered attempts, tried until one succeeds."""

    attempts: list[ConcatAttempt] = field(default_factory=list)
    timeout: int = 300

    @classmethod
    def default(cls) -> "ConcatPolicy":
        """Stream copy first, then re-encode to H.264/AAC."""
        return cls(
            attempts=[
                ConcatAttempt(
                    mode=ConcatMode.STREAM_COPY,
                    codec_args=("-c", "copy"),
                    requires_uniform_inputs=True,
                ),
                ConcatAttempt(
                    mode=ConcatMode.REENCODE,
                    codec_args=(
                        "-c:v",
                        "libx264",
                        "-preset",
                        settings.ffmpeg_preset,
                        "-crf",
                        str(settings.ffmpeg_crf),
                        "-c:a",
                        "aac",
                        "-b:a",
                        settings.ffmpeg_audio_bitrate,
                    ),
                ),
            ],
            timeout=settings.ffmpeg_timeout,
        )


def write_concat_list(clip_paths: Sequence[Path], list_file: Path) -> Path:
    """Write a concat demuxer list with absolute, quote-escaped paths."""
    lines = []
    for path in clip_paths:
        escaped = str(path.resolve()).replace("'", "'\\''")
        lines.append(f"file '{escaped}'\n")
    list_file.parent.mkdir(parents=True, exist_ok=True)
    list_file.write_text("".join(lines), encoding="utf-8")
    return list_file


class FfmpegConcatenator:
    """Runs a ConcatPolicy against the ffmpeg concat demuxer."""

    def __init__(self, policy: ConcatPolicy | None = None, ffmpeg: str | None = None) -> None:
        self.policy = policy or ConcatPolicy.default()
        self._ffmpeg = ffmpeg

    @property
    def ffmpeg(self) -> str:
        if self._ffmpeg is None:
            self._ffmpeg = resolve_ffmpeg()
        return self._ffmpeg

    def build_command(
        self, list_file: Path, output_path: Path, attempt: ConcatAttempt
    ) -> list[str]:
        return [
            self.ffmpeg,
            "-y",
            "-f",
            "concat",
            "-safe",
            "0",
            "-i",
            str(list_file),
            *attempt.codec_args,
            str(output_path),
        ]

    def run_attempt(self, list_file: Path, output_path: Path, attempt: ConcatAttempt) -> None:
        """Run one attempt synchronously.

        Raises:
            ConcatenationError: On non-zero exit, timeout or missing binary
        """
        try:
            cmd = self.build_command(list_file, output_path, attempt)
            result = subprocess.run(cmd, capture_output=True, timeout=self.policy.timeout)
        except subprocess.TimeoutExpired as e:
            raise ConcatenationError(
                f"ffmpeg {attempt.mode} timed out after {self.policy.timeout}s",
                mode=str(attempt.mode),
            ) from e
        except OSError as e:
            raise ConcatenationError(
                f"ffmpeg could not be started: {e}", mode=str(attempt.mode)
            ) from e

        if result.returncode != 0:
            stderr = (result.stderr or b"").decode(errors="replace")[-STDERR_TAIL:]
            raise ConcatenationError(
                f"ffmpeg {attempt.mode} exited with code {result.returncode}",
                mode=str(attempt.mode),
                stderr=stderr,
            )

    def check_uniform_inputs(self, clip_paths: Sequence[Path], mode: ConcatMode) -> None:
        """Read every clip's streams and compare stream parameters with the first one.

        Raises:
            ConcatenationError: If a clip cannot be read or differs from clip 1
        """
        try:
            signatures = [
                read_stream_signature(path, ffmpeg=self.ffmpeg) for path in clip_paths
            ]
        except (OSError, RuntimeError, subprocess.TimeoutExpired) as e:
            raise ConcatenationError(f"Could not read clip streams: {e}", mode=str(mode)) from e

        first = signatures[0]
        for ordinal, signature in enumerate(signatures[1:], start=2):
            if signature != first:
                raise ConcatenationError(
                    f"Clip {ordinal} stream parameters differ from clip 1, cannot {mode}",
                    mode=str(mode),
                    stderr=f"clip 1: {first}\nclip {ordinal}: {signature}",
                )

    async def concatenate(
        self,
        clip_paths: Sequence[Path],
        output_path: Path,
        list_file: Path,
    ) -> ConcatMode:
        """Join clips in order, walking the policy until an attempt succeeds.

        Returns:
            The mode that produced the output

        Raises:
            ConcatenationError: From the last attempt if every attempt fails
        """
        if not self.policy.attempts:
            raise ValueError("ConcatPolicy has no attempts")

        write_concat_list(clip_paths, list_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            for index, attempt in enumerate(self.policy.attempts):
                is_last = index == len(self.policy.attempts) - 1
                logger.info(
                    "concat_attempt_started",
                    mode=str(attempt.mode),
                    clip_count=len(clip_paths),
                    output_path=str(output_path),
                )
                try:
                    if attempt.requires_uniform_inputs:
                        await asyncio.to_thread(
                            self.check_uniform_inputs, clip_paths, attempt.mode
                        )
                    await asyncio.to_thread(self.run_attempt, list_file, output_path, attempt)
                except ConcatenationError as e:
                    output_path.unlink(missing_ok=True)
                    logger.warning(
                        "concat_attempt_failed",
                        mode=str(attempt.mode),
                        error=str(e),
                        stderr=(e.stderr or "")[-500:],
                        will_retry=not is_last,
                    )
                    if is_last:
                        raise
                    continue

                logger.info("concat_attempt_succeeded", mode=str(attempt.mode))
                return attempt.mode
        finally:
            list_file.unlink(missing_ok=True)

        # Unreachable: the loop either returns or raises on the last attempt
        raise ConcatenationError("No concatenation attempt ran", mode="none")


class VideoComposer:
    """Downloads scene clips into a per-task scratch directory and joins them."""

    def __init__(
        self,
        temp_dir: Path | None = None,
        output_dir: Path | None = None,
        concatenator: FfmpegConcatenator | None = None,
        http_client: httpx.AsyncClient | None = None,
        download_timeout: float | None = None,
    ) -> None:
        self.temp_dir = Path(temp_dir or settings.temp_dir)
        self.output_dir = Path(output_dir or settings.output_dir)
        self.concatenator = concatenator or FfmpegConcatenator()
        self._http_client = http_client
        self.download_timeout = download_timeout or settings.download_timeout

    def work_dir(self, task_id: str) -> Path:
        return self.temp_dir / f"compose_{task_id}"

    def scenes_dir(self, task_id: str) -> Path:
        return self.work_dir(task_id) / "scenes"

    def output_path(self, task_id: str) -> Path:
        return self.output_dir / f"{task_id}_final.mp4"

    async def compose_videos(self, clip_urls: Sequence[str | None], task_id: str) -> Path:
        """Download clips and join them into ``{output_dir}/{task_id}_final.mp4``.

        Scene clips are kept in the scratch directory afterwards.

        Raises:
            NoValidClipsError: If no usable URL was given
            ClipDownloadError: If any single download fails
            ConcatenationError: If every concatenation attempt fails
        """
        urls = [url for url in clip_urls if url]
        if not urls:
            raise NoValidClipsError()

        logger.info("composition_started", task_id=task_id, clip_count=len(urls))

        scenes_dir = self.scenes_dir(task_id)
        scenes_dir.mkdir(parents=True, exist_ok=True)

        local_paths = []
        for ordinal, url in enumerate(urls, start=1):
            destination = scenes_dir / f"scene_{ordinal:02d}.mp4"
            local_paths.append(await self.download_clip(url, destination, ordinal))

        output_path = self.output_path(task_id)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if len(local_paths) == 1:
            await asyncio.to_thread(shutil.copyfile, local_paths[0], output_path)
            logger.info("composition_single_clip_copied", task_id=task_id)
        else:
            mode = await self.concatenator.concatenate(
                local_paths,
                output_path,
                self.work_dir(task_id) / "concat_list.txt",
            )
            logger.info("composition_concatenated", task_id=task_id, mode=str(mode))

        logger.info(
            "composition_completed",
            task_id=task_id,
            output_path=str(output_path),
            size_bytes=output_path.stat().st_size,
        )
        return output_path

    async def download_clip(self, url: str, destination: Path, ordinal: int) -> Path:
        """Fetch one clip to ``destination``.

        Supports ``http(s)://`` and ``file://`` URLs as well as plain paths.

        Raises:
            ClipDownloadError: On any failure
        """
        logger.debug("clip_download_started", ordinal=ordinal, url=url[:100])

        try:
            parsed = urlparse(url)
            if parsed.scheme in ("http", "https"):
                await self._download_http(url, destination)
            elif parsed.scheme == "file":
                source = Path(url2pathname(parsed.path))
                await asyncio.to_thread(shutil.copyfile, source, destination)
            elif parsed.scheme == "":
                await asyncio.to_thread(shutil.copyfile, Path(url), destination)
            else:
                raise ValueError(f"Unsupported URL scheme: {parsed.scheme}")
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError, OSError, ValueError) as e:
            destination.unlink(missing_ok=True)
            logger.error("clip_download_failed", ordinal=ordinal, url=url[:100], error=str(e))
            raise ClipDownloadError(f"Failed to download clip {ordinal}: {e}", ordinal) from e

        return destination

    async def _download_http(self, url: str, destination: Path) -> None:
        if self._http_client is not None:
            await self._stream_to_file(self._http_client, url, destination)
            return

        async with httpx.AsyncClient(
            timeout=self.download_timeout, follow_redirects=True
        ) as client:
            await self._stream_to_file(client, url, destination)

    async def _stream_to_file(
        self, client: httpx.AsyncClient, url: str, destination: Path
    ) -> None:
        async with client.stream("GET", url, timeout=self.download_timeout) as response:
            response.raise_for_status()
            with destination.open("wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)

    async def health_check(self) -> bool:
        """True if an ffmpeg binary can be resolved."""
        try:
            return bool(self.concatenator.ffmpeg)
        except FileNotFoundError as e:
            logger.error("ffmpeg_not_found", error=str(e))
            return False
