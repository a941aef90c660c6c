"""
Audio duration probing and time slicing
"""

import asyncio
import os
import re
import shutil
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from mutagen import File as MutagenFile, MutagenError
from radioscript.core.logging import get_logger
from radioscript.exceptions import DurationProbeError, ChunkEncodingError

logger = get_logger(__name__)

# ffmpeg prints "Duration: HH:MM:SS.ms" on stderr when reading an input
DURATION_PATTERN = re.compile(r"Duration:\s*(\d+):(\d+):(\d+(?:\.\d+)?)")


class AudioTranscoder(ABC):
    """Capability to inspect and time-slice audio files on disk."""

    @abstractmethod
    async def probe_duration(self, path: str) -> float:
        """Returns the clip length in seconds or raises DurationProbeError."""

    @abstractmethod
    async def trim(self, source: str, destination: str, start: float, duration: float) -> None:
        """Writes [start, start + duration) of source to destination or raises ChunkEncodingError."""


class FFmpegTranscoder(AudioTranscoder):
    """
    Reads durations with mutagen, falling back to ffmpeg for containers
    mutagen does not know (WebM/Matroska), and cuts chunks with ffmpeg.
    """

    def __init__(self, ffmpeg_binary: str = "ffmpeg"):
        self.ffmpeg_binary = ffmpeg_binary

    def is_available(self) -> bool:
        return shutil.which(self.ffmpeg_binary) is not None

    async def probe_duration(self, path: str) -> float:
        duration = await asyncio.to_thread(self._extract_duration, path)
        if duration is not None:
            return duration
        return await self._ffmpeg_duration(path)

    def _extract_duration(self, path: str) -> Optional[float]:
        """Extracts duration using mutagen; None if mutagen cannot read the file."""
        try:
            audio = MutagenFile(path)
        except (MutagenError, OSError) as e:
            logger.debug(f"mutagen could not read {path}: {e}")
            return None

        if audio is None or getattr(audio, "info", None) is None:
            return None

        duration = getattr(audio.info, "length", None)
        if not duration or duration < 0:
            return None

        logger.info(
            "Probed audio metadata",
            duration_seconds=duration,
            bitrate=getattr(audio.info, "bitrate", None),
            sample_rate=getattr(audio.info, "sample_rate", None),
            channels=getattr(audio.info, "channels", None),
        )
        return float(duration)

    async def _ffmpeg_duration(self, path: str) -> float:
        if not os.path.exists(path):
            raise DurationProbeError(path)

        try:
            # Without an output ffmpeg exits non-zero after printing the input info.
            _, stderr = await self._run([self.ffmpeg_binary, "-hide_banner", "-i", path])
        except OSError as e:
            raise DurationProbeError(path, cause=e) from e

        match = DURATION_PATTERN.search(stderr)
        if not match:
            raise DurationProbeError(path)

        hours, minutes, seconds = match.groups()
        duration = int(hours) * 3600 + int(minutes) * 60 + float(seconds)
        if duration <= 0:
            raise DurationProbeError(path)

        logger.info(f"Probed duration of {path} with ffmpeg: {duration:.2f}s")
        return duration

    async def trim(self, source: str, destination: str, start: float, duration: float) -> None:
        cmd = [
            self.ffmpeg_binary,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            "-ss", f"{start:.3f}",
            "-t", f"{duration:.3f}",
            "-i", source,
            "-vn",
            destination,
        ]
        logger.debug(f"Running {' '.join(cmd)}")

        try:
            returncode, stderr = await self._run(cmd)
        except OSError as e:
            raise ChunkEncodingError(start, duration, f"could not start {self.ffmpeg_binary}", cause=e) from e

        if returncode != 0:
            raise ChunkEncodingError(start, duration, stderr.strip() or f"exit code {returncode}")

        if not os.path.exists(destination) or os.path.getsize(destination) == 0:
            raise ChunkEncodingError(start, duration, "encoder produced no output")

        logger.info(f"Extracted chunk {start:.1f}s+{duration:.1f}s to {destination}")

    async def _run(self, cmd: List[str]) -> Tuple[int, str]:
        """Runs ffmpeg and returns its exit code and stderr. The process is killed if the caller is cancelled."""
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await process.communicate()
        finally:
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
                logger.warning(f"Killed {self.ffmpeg_binary} (pid {process.pid}) after cancellation")
        return process.returncode, stderr.decode(errors="replace")
