"""Tests for the video composer and its ffmpeg concatenation policy."""

import subprocess
from dataclasses import replace
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from reelsmith.domain.enums import ConcatMode
from reelsmith.exceptions import ClipDownloadError, ConcatenationError, NoValidClipsError
from reelsmith.services.composer import (
    ConcatPolicy,
    FfmpegConcatenator,
    VideoComposer,
    write_concat_list,
)
from reelsmith.utils.ffmpeg import (
    StreamSignature,
    parse_stream_signature,
    read_stream_signature,
    render_color_clip,
    resolve_ffmpeg,
)

RUN = "reelsmith.services.composer.subprocess.run"
SIGNATURE = "reelsmith.services.composer.read_stream_signature"

H264_720P = StreamSignature(
    video_codec="h264",
    width=1280,
    height=720,
    pix_fmt="yuv420p",
    frame_rate="30",
    time_base="15360",
    audio_codec="aac",
    sample_rate=44100,
    channel_layout="stereo",
)


def make_clips(tmp_path: Path, count: int) -> list[str]:
    clips_dir = tmp_path / "remote"
    clips_dir.mkdir(exist_ok=True)
    urls = []
    for i in range(1, count + 1):
        clip = clips_dir / f"clip-{i}.mp4"
        clip.write_bytes(f"clip {i} bytes".encode())
        urls.append(clip.as_uri())
    return urls


@pytest.fixture
def video_composer(tmp_path: Path) -> VideoComposer:
    return VideoComposer(
        temp_dir=tmp_path / "temp",
        output_dir=tmp_path / "output",
        concatenator=FfmpegConcatenator(policy=ConcatPolicy.default(), ffmpeg="ffmpeg"),
    )


class FakeFfmpeg:
    """Stands in for subprocess.run; fails the listed (1-based) calls."""

    def __init__(self, fail_calls: set[int] | None = None, timeout_calls: set[int] | None = None):
        self.fail_calls = fail_calls or set()
        self.timeout_calls = timeout_calls or set()
        self.commands: list[list[str]] = []
        self.list_contents: list[str] = []
        self.output_existed_before: list[bool] = []

    def __call__(self, cmd, capture_output=True, timeout=None):
        self.commands.append(cmd)
        call = len(self.commands)
        output = Path(cmd[-1])
        self.output_existed_before.append(output.exists())
        self.list_contents.append(Path(cmd[cmd.index("-i") + 1]).read_text())

        if call in self.timeout_calls:
            raise subprocess.TimeoutExpired(cmd, timeout)
        if call in self.fail_calls:
            output.write_bytes(b"partial")
            return subprocess.CompletedProcess(cmd, 1, b"", b"Non-monotonic DTS; codec mismatch")
        output.write_bytes(b"joined video")
        return subprocess.CompletedProcess(cmd, 0, b"", b"")


class TestComposeSingleClip:
    @pytest.mark.asyncio
    async def test_single_clip_is_copied_byte_for_byte(
        self, tmp_path: Path, video_composer: VideoComposer
    ) -> None:
        [url] = make_clips(tmp_path, 1)

        with patch(RUN) as mock_run:
            output = await video_composer.compose_videos([url], "task-1")

        mock_run.assert_not_called()
        assert output == tmp_path / "output" / "task-1_final.mp4"
        assert output.read_bytes() == b"clip 1 bytes"

    @pytest.mark.asyncio
    async def test_missing_entries_are_filtered(
        self, tmp_path: Path, video_composer: VideoComposer
    ) -> None:
        [url] = make_clips(tmp_path, 1)

        with patch(RUN) as mock_run:
            output = await video_composer.compose_videos([None, url, ""], "task-1")

        mock_run.assert_not_called()
        assert output.read_bytes() == b"clip 1 bytes"

    @pytest.mark.asyncio
    async def test_no_valid_clips(self, video_composer: VideoComposer) -> None:
        with pytest.raises(NoValidClipsError):
            await video_composer.compose_videos([None, None], "task-1")


class TestComposeMultipleClips:
    @pytest.fixture(autouse=True)
    def uniform_clips(self):
        with patch(SIGNATURE, return_value=H264_720P) as read_signature:
            yield read_signature

    @pytest.mark.asyncio
    async def test_stream_copy_fast_path(
        self, tmp_path: Path, video_composer: VideoComposer
    ) -> None:
        urls = make_clips(tmp_path, 3)
        ffmpeg = FakeFfmpeg()

        with patch(RUN, side_effect=ffmpeg):
            output = await video_composer.compose_videos(urls, "task-1")

        assert len(ffmpeg.commands) == 1
        cmd = ffmpeg.commands[0]
        assert cmd[:6] == ["ffmpeg", "-y", "-f", "concat", "-safe", "0"]
        assert cmd[-3:-1] == ["-c", "copy"]
        assert output.read_bytes() == b"joined video"

        scenes_dir = tmp_path / "temp" / "compose_task-1" / "scenes"
        listed = ffmpeg.list_contents[0].splitlines()
        assert listed == [
            f"file '{(scenes_dir / f'scene_0{i}.mp4').resolve()}'" for i in (1, 2, 3)
        ]

        # Scene clips are kept, the list file is removed
        assert sorted(p.name for p in scenes_dir.iterdir()) == [
            "scene_01.mp4",
            "scene_02.mp4",
            "scene_03.mp4",
        ]
        assert (scenes_dir / "scene_02.mp4").read_bytes() == b"clip 2 bytes"
        assert not (tmp_path / "temp" / "compose_task-1" / "concat_list.txt").exists()

    @pytest.mark.asyncio
    async def test_falls_back_to_reencode(
        self, tmp_path: Path, video_composer: VideoComposer
    ) -> None:
        urls = make_clips(tmp_path, 2)
        ffmpeg = FakeFfmpeg(fail_calls={1})

        with patch(RUN, side_effect=ffmpeg):
            output = await video_composer.compose_videos(urls, "task-1")

        assert len(ffmpeg.commands) == 2
        reencode = ffmpeg.commands[1]
        assert "libx264" in reencode
        assert reencode[reencode.index("-crf") + 1] == "23"
        assert reencode[reencode.index("-b:a") + 1] == "128k"
        # Partial output from the failed attempt was removed first
        assert ffmpeg.output_existed_before == [False, False]
        assert output.read_bytes() == b"joined video"

    @pytest.mark.asyncio
    async def test_timeout_triggers_fallback(
        self, tmp_path: Path, video_composer: VideoComposer
    ) -> None:
        urls = make_clips(tmp_path, 2)
        ffmpeg = FakeFfmpeg(timeout_calls={1})

        with patch(RUN, side_effect=ffmpeg):
            output = await video_composer.compose_videos(urls, "task-1")

        assert len(ffmpeg.commands) == 2
        assert output.exists()

    @pytest.mark.asyncio
    async def test_both_attempts_fail(self, tmp_path: Path, video_composer: VideoComposer) -> None:
        urls = make_clips(tmp_path, 2)
        ffmpeg = FakeFfmpeg(fail_calls={1, 2})

        with patch(RUN, side_effect=ffmpeg):
            with pytest.raises(ConcatenationError) as exc_info:
                await video_composer.compose_videos(urls, "task-1")

        assert exc_info.value.mode == ConcatMode.REENCODE
        assert "codec mismatch" in exc_info.value.stderr
        assert not (tmp_path / "output" / "task-1_final.mp4").exists()
        assert not (tmp_path / "temp" / "compose_task-1" / "concat_list.txt").exists()

    @pytest.mark.asyncio
    async def test_tasks_use_separate_scratch_dirs(
        self, tmp_path: Path, video_composer: VideoComposer
    ) -> None:
        urls = make_clips(tmp_path, 2)

        with patch(RUN, side_effect=FakeFfmpeg()):
            first = await video_composer.compose_videos(urls, "task-a")
            second = await video_composer.compose_videos(urls, "task-b")

        assert first != second
        assert (tmp_path / "temp" / "compose_task-a" / "scenes" / "scene_01.mp4").exists()
        assert (tmp_path / "temp" / "compose_task-b" / "scenes" / "scene_01.mp4").exists()

    @pytest.mark.asyncio
    async def test_mismatched_clips_skip_stream_copy(
        self, tmp_path: Path, video_composer: VideoComposer, uniform_clips
    ) -> None:
        urls = make_clips(tmp_path, 3)
        smaller = replace(H264_720P, width=640, height=360)
        uniform_clips.side_effect = [H264_720P, H264_720P, smaller]
        ffmpeg = FakeFfmpeg()

        with patch(RUN, side_effect=ffmpeg):
            output = await video_composer.compose_videos(urls, "task-1")

        assert uniform_clips.call_count == 3
        assert len(ffmpeg.commands) == 1
        assert "libx264" in ffmpeg.commands[0]
        assert "copy" not in ffmpeg.commands[0]
        assert output.read_bytes() == b"joined video"

    @pytest.mark.asyncio
    async def test_unreadable_clip_skips_stream_copy(
        self, tmp_path: Path, video_composer: VideoComposer, uniform_clips
    ) -> None:
        urls = make_clips(tmp_path, 2)
        uniform_clips.side_effect = RuntimeError("No video stream found")
        ffmpeg = FakeFfmpeg(fail_calls={1})

        with patch(RUN, side_effect=ffmpeg):
            with pytest.raises(ConcatenationError) as exc_info:
                await video_composer.compose_videos(urls, "task-1")

        assert len(ffmpeg.commands) == 1
        assert exc_info.value.mode == ConcatMode.REENCODE


class TestDownloads:
    @pytest.mark.asyncio
    async def test_any_download_failure_aborts(
        self, tmp_path: Path, video_composer: VideoComposer
    ) -> None:
        urls = make_clips(tmp_path, 3)
        Path(tmp_path / "remote" / "clip-2.mp4").unlink()

        with patch(RUN) as mock_run:
            with pytest.raises(ClipDownloadError) as exc_info:
                await video_composer.compose_videos(urls, "task-1")

        assert exc_info.value.ordinal == 2
        mock_run.assert_not_called()

    @pytest.mark.asyncio
    async def test_http_download(self, tmp_path: Path) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/missing.mp4":
                return httpx.Response(404)
            return httpx.Response(200, content=b"remote clip")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        composer = VideoComposer(
            temp_dir=tmp_path / "temp",
            output_dir=tmp_path / "output",
            concatenator=FfmpegConcatenator(ffmpeg="ffmpeg"),
            http_client=client,
        )

        output = await composer.compose_videos(["https://oss.example.com/a.mp4"], "task-1")
        assert output.read_bytes() == b"remote clip"

        with pytest.raises(ClipDownloadError) as exc_info:
            await composer.compose_videos(["https://oss.example.com/missing.mp4"], "task-2")
        assert exc_info.value.ordinal == 1

        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [httpx.InvalidURL("bad host"), httpx.StreamConsumed()],
        ids=["invalid-url", "stream-consumed"],
    )
    async def test_non_http_errors_from_httpx(self, tmp_path: Path, error: Exception) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise error

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        composer = VideoComposer(
            temp_dir=tmp_path / "temp",
            output_dir=tmp_path / "output",
            concatenator=FfmpegConcatenator(ffmpeg="ffmpeg"),
            http_client=client,
        )

        with pytest.raises(ClipDownloadError) as exc_info:
            await composer.compose_videos(["https://oss.example.com/a.mp4"], "task-1")

        assert exc_info.value.ordinal == 1
        assert not (tmp_path / "temp" / "compose_task-1" / "scenes" / "scene_01.mp4").exists()
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unsupported_scheme(self, tmp_path: Path, video_composer: VideoComposer) -> None:
        with pytest.raises(ClipDownloadError):
            await video_composer.compose_videos(["ftp://example.com/a.mp4"], "task-1")


class TestConcatList:
    def test_paths_are_absolute_and_quote_escaped(self, tmp_path: Path) -> None:
        clip = tmp_path / "it's here.mp4"
        list_file = write_concat_list([clip], tmp_path / "list.txt")

        escaped = str(clip.resolve()).replace("'", "'\\''")
        assert list_file.read_text() == f"file '{escaped}'\n"

    def test_default_policy_order(self) -> None:
        policy = ConcatPolicy.default()

        assert [a.mode for a in policy.attempts] == [ConcatMode.STREAM_COPY, ConcatMode.REENCODE]
        assert policy.timeout == 300


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_missing_ffmpeg(self, tmp_path: Path) -> None:
        composer = VideoComposer(temp_dir=tmp_path, output_dir=tmp_path)

        with patch(
            "reelsmith.services.composer.resolve_ffmpeg",
            side_effect=FileNotFoundError("no ffmpeg"),
        ):
            assert await composer.health_check() is False

    @pytest.mark.asyncio
    async def test_configured_ffmpeg(self, video_composer: VideoComposer) -> None:
        assert await video_composer.health_check() is True


FFMPEG_INFO = """\
Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'scene_01.mp4':
  Duration: 00:00:05.00, start: 0.000000, bitrate: 42 kb/s
  Stream #0:0[0x1](und): Video: h264 (High) (avc1 / 0x31637661), yuv420p(progressive), \
1280x720 [SAR 1:1 DAR 16:9], 36 kb/s, 30 fps, 30 tbr, 15360 tbn (default)
  Stream #0:1[0x2](und): Audio: aac (LC) (mp4a / 0x6134706D), 44100 Hz, stereo, fltp, \
2 kb/s (default)
At least one output file must be specified
"""


class TestStreamSignature:
    def test_parses_video_and_audio(self) -> None:
        assert parse_stream_signature(FFMPEG_INFO) == H264_720P

    def test_video_only(self) -> None:
        info = "\n".join(line for line in FFMPEG_INFO.splitlines() if "Audio:" not in line)

        signature = parse_stream_signature(info)

        assert signature.has_audio is False
        assert signature != H264_720P

    def test_no_video_stream(self) -> None:
        with pytest.raises(RuntimeError):
            parse_stream_signature("scene_01.mp4: Invalid data found when processing input")


@pytest.fixture(scope="module")
def ffmpeg_binary() -> str:
    return resolve_ffmpeg()


def render(ffmpeg: str, path: Path, color: str, size: str) -> Path:
    return render_color_clip(path, 1.0, color=color, size=size, fps=30, ffmpeg=ffmpeg)


def decode_errors(ffmpeg: str, path: Path) -> str:
    result = subprocess.run(
        [ffmpeg, "-v", "error", "-i", str(path), "-f", "null", "-"],
        capture_output=True,
        timeout=120,
    )
    assert result.returncode == 0
    return result.stderr.decode(errors="replace").strip()


class TestRealFfmpeg:
    """Runs the bundled ffmpeg binary end to end."""

    @pytest.fixture
    def real_composer(self, tmp_path: Path, ffmpeg_binary: str) -> VideoComposer:
        return VideoComposer(
            temp_dir=tmp_path / "temp",
            output_dir=tmp_path / "output",
            concatenator=FfmpegConcatenator(ffmpeg=ffmpeg_binary),
        )

    def test_reads_rendered_clip_streams(self, tmp_path: Path, ffmpeg_binary: str) -> None:
        clip = render(ffmpeg_binary, tmp_path / "red.mp4", "red", "320x180")

        signature = read_stream_signature(clip, ffmpeg=ffmpeg_binary)

        assert (signature.video_codec, signature.width, signature.height) == ("h264", 320, 180)
        assert signature.pix_fmt == "yuv420p"
        assert signature.audio_codec == "aac"
        assert signature.sample_rate == 44100

    @pytest.mark.asyncio
    async def test_matching_clips_use_stream_copy(
        self, tmp_path: Path, ffmpeg_binary: str, real_composer: VideoComposer
    ) -> None:
        urls = [
            render(ffmpeg_binary, tmp_path / "red.mp4", "red", "320x180").as_uri(),
            render(ffmpeg_binary, tmp_path / "blue.mp4", "blue", "320x180").as_uri(),
        ]
        concatenator = real_composer.concatenator

        with patch.object(concatenator, "run_attempt", wraps=concatenator.run_attempt) as run:
            output = await real_composer.compose_videos(urls, "task-1")

        assert [c.args[2].mode for c in run.call_args_list] == [ConcatMode.STREAM_COPY]
        assert decode_errors(ffmpeg_binary, output) == ""

    @pytest.mark.asyncio
    async def test_mismatched_clips_are_reencoded(
        self, tmp_path: Path, ffmpeg_binary: str, real_composer: VideoComposer
    ) -> None:
        urls = [
            render(ffmpeg_binary, tmp_path / "red.mp4", "red", "320x180").as_uri(),
            render(ffmpeg_binary, tmp_path / "blue.mp4", "blue", "640x360").as_uri(),
        ]
        concatenator = real_composer.concatenator

        with patch.object(concatenator, "run_attempt", wraps=concatenator.run_attempt) as run:
            output = await real_composer.compose_videos(urls, "task-1")

        assert [c.args[2].mode for c in run.call_args_list] == [ConcatMode.REENCODE]
        assert decode_errors(ffmpeg_binary, output) == ""

        signature = read_stream_signature(output, ffmpeg=ffmpeg_binary)
        assert (signature.width, signature.height) == (320, 180)
