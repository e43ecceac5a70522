"""Orchestrate whole-pack asset transcoding.

`PackPipeline` walks every node of a pack, deduplicates identical assets
through a run-scoped `AssetCache`, applies the target profile's policy and
returns a new pack carrying the transformed assets.
"""

import dataclasses
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

from tqdm import tqdm

from .config import TranscodeConfig, TargetProfile
from .core import (
    Asset, AssetCache, AssetKind, AudioFormat, ImageFormat, Pack,
)
from .profiles import TranscodeProfile, build_profile

logger = logging.getLogger("pack_pipeline.pipeline")

_Job = Tuple[int, AssetKind, Asset]


@dataclass
class TranscodeStats:
    """Counters for one pack transform."""

    profile: str
    assets: int = 0
    transcoded: int = 0
    reused: int = 0
    changed: int = 0
    bytes_before: int = 0
    bytes_after: int = 0
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


def _format_bytes(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if size < 1024.0 or unit == "GiB":
            if unit == "B":
                return f"{int(size)} {unit}"
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{int(num_bytes)} B"


def _format_size_change(before_bytes: int, after_bytes: int) -> str:
    delta = after_bytes - before_bytes
    delta_sign = "+" if delta >= 0 else "-"
    delta_text = f"{delta_sign}{_format_bytes(abs(delta))}"
    before_text = _format_bytes(before_bytes)
    after_text = _format_bytes(after_bytes)
    if before_bytes > 0:
        pct = (delta / before_bytes) * 100.0
        return f"size={before_text}->{after_text} ({delta_text}, {pct:+.1f}%)"
    return f"size={before_text}->{after_text} ({delta_text})"


class PackPipeline:
    """Transcode every asset of a pack into one target profile.

    Each call to ``transform`` owns a fresh cache, so an asset shared by many
    nodes is converted once per run. Input packs are never mutated: nodes
    whose assets did not change are shared with the returned pack.
    """

    def __init__(
        self,
        config: Optional[TranscodeConfig] = None,
        progress_callback: Optional[Callable[[str, int, int], None]] = None,
    ):
        """Validate settings and prepare the pipeline."""
        self.config = config or TranscodeConfig()
        self.config.validate()
        self._progress_callback = progress_callback
        self.last_stats: Optional[TranscodeStats] = None

    # ------------------------------------------
    # Public surface
    # ------------------------------------------

    @staticmethod
    def has_non_canonical_assets(pack: Pack) -> bool:
        """Return True if any image is not BMP or any audio is not WAV."""
        for _, kind, asset in pack.iter_assets():
            if kind is AssetKind.IMAGE and asset.format is not ImageFormat.BMP:
                return True
            if kind is AssetKind.AUDIO and asset.format is not AudioFormat.WAV:
                return True
        return False

    def to_compressed(self, pack: Pack) -> Pack:
        return self.transform(pack, TargetProfile.COMPRESSED)

    def to_uncompressed(self, pack: Pack) -> Pack:
        return self.transform(pack, TargetProfile.UNCOMPRESSED)

    def to_firmware_profile(self, pack: Pack) -> Pack:
        return self.transform(pack, TargetProfile.FIRMWARE)

    def transform(self, pack: Pack, target: Union[TargetProfile, str]) -> Pack:
        """Return ``pack`` with every asset converted for ``target``.

        The first failing asset aborts the whole transform; its exception
        propagates unchanged and no partial pack is returned.
        """
        profile = build_profile(target, self.config)
        name = profile.target.value
        cache = AssetCache(self.config.digest_algorithm)
        jobs: List[_Job] = list(pack.iter_assets())
        started = time.monotonic()
        logger.info(
            "[%s] transcoding %d asset(s) across %d node(s)", name, len(jobs), len(pack),
        )

        if self.config.max_workers <= 1 or len(jobs) <= 1:
            results = self._run_sequential(name, jobs, profile, cache)
        else:
            results = self._run_parallel(name, jobs, profile, cache)

        nodes = list(pack.nodes)
        stats = TranscodeStats(profile=name, assets=len(jobs))
        for (index, kind, asset), result in zip(jobs, results):
            stats.bytes_before += asset.size
            stats.bytes_after += result.size
            if result is not asset and result != asset:
                nodes[index] = nodes[index].with_asset(kind, result)
                stats.changed += 1
        stats.transcoded = cache.misses
        stats.reused = cache.hits
        stats.elapsed_seconds = time.monotonic() - started
        self.last_stats = stats

        logger.info(
            "[%s] assets=%d transcoded=%d reused=%d changed=%d %s (%.2fs)",
            name, stats.assets, stats.transcoded, stats.reused, stats.changed,
            _format_size_change(stats.bytes_before, stats.bytes_after),
            stats.elapsed_seconds,
        )
        if not stats.changed:
            return pack
        return pack.with_nodes(nodes)

    # ------------------------------------------
    # Helpers
    # ------------------------------------------

    def _report_progress(self, profile_name: str, done: int, total: int) -> None:
        """Publish per-asset progress to logs and optional callback."""
        logger.debug("[progress] profile=%s done=%d total=%d", profile_name, done, total)
        if self._progress_callback is not None:
            try:
                self._progress_callback(profile_name, done, total)
            except Exception:
                logger.debug("Progress callback failed.", exc_info=True)

    @staticmethod
    def _transcode_job(name: str, job: _Job, profile: TranscodeProfile,
                       cache: AssetCache) -> Asset:
        index, kind, asset = job
        try:
            return cache.get_or_compute(asset.data, lambda _data: profile.transcode(asset))
        except Exception as exc:
            logger.error(
                "[%s] node %d %s asset (%s, %d bytes) failed: %s",
                name, index, kind.value, asset.format.name, asset.size, exc,
            )
            raise

    def _run_sequential(self, name: str, jobs: List[_Job], profile: TranscodeProfile,
                        cache: AssetCache) -> List[Asset]:
        results = []
        total = len(jobs)
        for job in tqdm(jobs, desc=f"{name} assets", disable=not self.config.show_progress):
            results.append(self._transcode_job(name, job, profile, cache))
            self._report_progress(name, len(results), total)
        return results

    def _run_parallel(self, name: str, jobs: List[_Job], profile: TranscodeProfile,
                      cache: AssetCache) -> List[Asset]:
        """Run jobs on a thread pool; the cache keeps one compute per digest."""
        results: List[Optional[Asset]] = [None] * len(jobs)
        total = len(jobs)
        done = 0
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            futures = {
                pool.submit(self._transcode_job, name, job, profile, cache): i
                for i, job in enumerate(jobs)
            }
            try:
                with tqdm(total=total, desc=f"{name} assets",
                          disable=not self.config.show_progress) as bar:
                    for future in as_completed(futures):
                        results[futures[future]] = future.result()
                        done += 1
                        bar.update(1)
                        self._report_progress(name, done, total)
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        return results


def has_non_canonical_assets(pack: Pack) -> bool:
    """Return True if any asset is not already a BMP image or WAV sound."""
    return PackPipeline.has_non_canonical_assets(pack)


def to_compressed(pack: Pack, config: Optional[TranscodeConfig] = None) -> Pack:
    return PackPipeline(config).to_compressed(pack)


def to_uncompressed(pack: Pack, config: Optional[TranscodeConfig] = None) -> Pack:
    return PackPipeline(config).to_uncompressed(pack)


def to_firmware_profile(pack: Pack, config: Optional[TranscodeConfig] = None) -> Pack:
    return PackPipeline(config).to_firmware_profile(pack)
