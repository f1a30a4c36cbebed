"""Bundle pipeline execution.

The runner walks a linear state machine:

    INIT → RESOLVE → ASSEMBLE → SEAL → PERSIST → PUBLISH → DONE

Per-key problems (an entry that cannot be opened, an object that cannot
be fetched) are recorded in the report and the run moves on. Anything else
raises a FatalError subclass, marks the report FAILED and stops the run.
"""

import logging
import shutil
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import closing
from datetime import datetime
from tempfile import SpooledTemporaryFile
from typing import BinaryIO, Callable, Iterable, Optional, Union
from uuid import uuid4

from bundler.lib.logging_config import log_with_context
from bundler.services.archive import EntrySink, SealedArchive, ZipArchiveWriter
from bundler.services.errors import (
    AssemblyError,
    EntryConflictError,
    FatalError,
    FetchError,
    TemplateError,
)
from bundler.services.index import IndexRenderer, load_index_template
from bundler.services.manifest import Manifest, ManifestSource, resolve_manifest
from bundler.services.minio import FETCH_EXCEPTIONS, ObjectStore
from bundler.services.publisher import AccessLink, AccessPublisher

from .config import BundleConfig
from .models import FetchFailurePolicy, KeyResult, RunReport, RunStage

logger = logging.getLogger(__name__)

# Fetches allowed ahead of the writer, per worker
FETCH_AHEAD_PER_WORKER = 2


class BundlePipeline:
    """Collects manifest objects into one archive and publishes a link to it.

    One instance may run more than once; each run gets a fresh archive and
    report.
    """

    def __init__(
        self,
        config: BundleConfig,
        source: ObjectStore,
        publisher: AccessPublisher,
        manifest_source: ManifestSource,
        renderer: Optional[IndexRenderer] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize pipeline.

        Args:
            config: Run configuration
            source: Client bound to the source bucket
            publisher: Persists the archive and issues the link
            manifest_source: Where the keys come from
            renderer: Index renderer (packaged template if None)
            clock: Source of "now" for archive names and entry timestamps
        """
        self.config = config
        self.source = source
        self.publisher = publisher
        self.manifest_source = manifest_source
        self.renderer = renderer or IndexRenderer(
            load_index_template(config.index_template),
            title=config.index_title,
        )
        self._clock = clock
        self._run_id: Optional[str] = None

    # =========================================================================
    # Run
    # =========================================================================

    def run(self, run_id: Optional[str] = None) -> RunReport:
        """Execute one run.

        Args:
            run_id: Identifier for logs and the report (generated if None)

        Returns:
            RunReport in the DONE stage, carrying the access link

        Raises:
            FatalError: Resolution, assembly, seal, persist or publish
                failure. The exception carries ``stage`` and the partial
                ``report``.
        """
        self._run_id = run_id or str(uuid4())
        report = RunReport(run_id=self._run_id, started_at=self._clock())
        sealed: Optional[SealedArchive] = None

        try:
            manifest = self._resolve(report)
            sealed = self._assemble(manifest, report)
            object_name = self._persist(sealed, report)
            report.link = self._publish(object_name, report)
        except FatalError as e:
            e.stage = report.stage.value
            e.report = report
            report.failed_stage = report.stage
            report.stage = RunStage.FAILED
            report.error = str(e)
            report.completed_at = self._clock()
            log_with_context(
                logger, "error", f"Run failed during {e.stage}: {e}",
                run_id=self._run_id, stage=e.stage,
            )
            raise
        finally:
            if sealed is not None and not self.config.keep_local_archive:
                sealed.path.unlink(missing_ok=True)

        report.stage = RunStage.DONE
        report.completed_at = self._clock()
        log_with_context(
            logger, "info", f"Run complete: {report.summary()}",
            run_id=self._run_id, object_name=report.object_name,
        )
        return report

    def _enter(self, report: RunReport, stage: RunStage) -> None:
        report.stage = stage
        log_with_context(logger, "info", f"Entering {stage.value}", run_id=self._run_id, stage=stage.value)

    # =========================================================================
    # Stages
    # =========================================================================

    def _resolve(self, report: RunReport) -> Manifest:
        self._enter(report, RunStage.RESOLVE)
        manifest = resolve_manifest(self.manifest_source)
        report.manifest_source = manifest.source
        report.manifest_keys = list(manifest.keys)
        return manifest

    def _assemble(self, manifest: Manifest, report: RunReport) -> SealedArchive:
        self._enter(report, RunStage.ASSEMBLE)
        with ZipArchiveWriter.open(self.config.archive, clock=self._clock) as writer:
            report.archive_name = writer.name
            self._write_index(writer, manifest, report)

            if self.config.fetch_workers > 1:
                self._add_keys_concurrently(writer, manifest, report)
            else:
                for key in manifest:
                    report.items.append(self._add_key(writer, key))

            self._enter(report, RunStage.SEAL)
            sealed = writer.close()

        report.archive_path = sealed.path
        report.archive_size_bytes = sealed.size_bytes
        report.archive_sha256 = sealed.sha256
        logger.info(f"Wrote {sealed.entry_count} entries to {sealed.path}")
        return sealed

    def _persist(self, sealed: SealedArchive, report: RunReport) -> str:
        self._enter(report, RunStage.PERSIST)
        object_name = self.publisher.persist(sealed)
        report.object_name = object_name
        return object_name

    def _publish(self, object_name: str, report: RunReport) -> AccessLink:
        self._enter(report, RunStage.PUBLISH)
        return self.publisher.issue_link(object_name, ttl=self.config.link_ttl)

    # =========================================================================
    # Index
    # =========================================================================

    def _write_index(self, writer: ZipArchiveWriter, manifest: Manifest, report: RunReport) -> None:
        """Write the index entry before any object is fetched."""
        name = self.config.index_entry_name
        try:
            document = self.renderer.render(manifest.keys, generated_at=writer.created_at)
            writer.write_entry(name, document)
        except (TemplateError, EntryConflictError) as e:
            raise AssemblyError(f"Cannot write index entry {name}: {e}") from e
        report.index_entry = name

    # =========================================================================
    # Per-key work
    # =========================================================================

    def _add_key(self, writer: ZipArchiveWriter, key: str) -> KeyResult:
        try:
            writer.reserve(key)
        except EntryConflictError as e:
            return self._skip(key, e)

        if self.config.fetch_failure_policy is FetchFailurePolicy.OMIT:
            try:
                spool = self._spool_object(key)
            except FetchError as e:
                return self._fetch_failed(writer, key, e)
            return self._write_spool(writer, key, spool)

        return self._stream_object(writer, key)

    def _add_keys_concurrently(self, writer: ZipArchiveWriter, manifest: Manifest, report: RunReport) -> None:
        """Fetch on a worker pool, write entries in manifest order here.

        At most ``fetch_workers * FETCH_AHEAD_PER_WORKER`` fetches are in
        flight or finished but unwritten at any time, so buffered spools are
        bounded by the pool size rather than the manifest length.
        """
        window = self.config.fetch_workers * FETCH_AHEAD_PER_WORKER
        keys = iter(manifest)
        pending: deque[tuple[str, Union[KeyResult, Future]]] = deque()
        in_flight = 0
        exhausted = False
        with ThreadPoolExecutor(
            max_workers=self.config.fetch_workers,
            thread_name_prefix="bundler-fetch",
        ) as pool:
            try:
                while True:
                    while not exhausted and in_flight < window:
                        key = next(keys, None)
                        if key is None:
                            exhausted = True
                            break
                        try:
                            writer.reserve(key)
                        except EntryConflictError as e:
                            pending.append((key, self._skip(key, e)))
                            continue
                        pending.append((key, pool.submit(self._spool_object, key)))
                        in_flight += 1

                    if not pending:
                        break
                    key, outcome = pending.popleft()
                    if isinstance(outcome, KeyResult):
                        report.items.append(outcome)
                        continue
                    in_flight -= 1
                    try:
                        spool = outcome.result()
                    except FetchError as e:
                        report.items.append(self._fetch_failed(writer, key, e))
                        continue
                    report.items.append(self._write_spool(writer, key, spool))
            except BaseException:
                self._drop_pending(pending)
                raise

    @staticmethod
    def _drop_pending(pending: Iterable) -> None:
        for _, outcome in pending:
            if not isinstance(outcome, Future):
                continue
            outcome.cancel()
            if outcome.done() and not outcome.cancelled() and outcome.exception() is None:
                outcome.result().close()

    def _stream_object(self, writer: ZipArchiveWriter, key: str) -> KeyResult:
        """Stream straight into the entry. A failed fetch leaves the entry in place."""
        with writer.begin_entry(key) as sink:
            try:
                self._copy_object(key, sink)
            except FetchError as e:
                self._warn(key, "failed", e, bytes_written=sink.bytes_written)
                return KeyResult.failed(
                    key, str(e), entry_written=True, bytes_written=sink.bytes_written
                )
        return KeyResult.written(key, sink.bytes_written)

    def _spool_object(self, key: str) -> BinaryIO:
        """Fetch a whole object into a spooled temporary file, rewound."""
        spool = SpooledTemporaryFile(max_size=self.config.spool_max_bytes, mode="w+b")
        try:
            self._copy_object(key, spool)
        except BaseException:
            spool.close()
            raise
        spool.seek(0)
        return spool

    def _write_spool(self, writer: ZipArchiveWriter, key: str, spool: BinaryIO) -> KeyResult:
        with closing(spool):
            with writer.begin_entry(key) as sink:
                try:
                    shutil.copyfileobj(spool, sink, self.config.chunk_size)
                except OSError as e:
                    raise AssemblyError(f"Cannot write entry {key}: {e}") from e
        return KeyResult.written(key, sink.bytes_written)

    def _copy_object(self, key: str, sink: Union[EntrySink, BinaryIO]) -> int:
        """Copy one object into a sink.

        Read-side failures become FetchError; write-side failures are local
        and become AssemblyError.
        """
        copied = 0
        with closing(self.source.iter_object(key, self.config.chunk_size)) as chunks:
            while True:
                try:
                    chunk = next(chunks)
                except StopIteration:
                    break
                except FETCH_EXCEPTIONS as e:
                    raise FetchError(key, str(e)) from e
                try:
                    sink.write(chunk)
                except OSError as e:
                    raise AssemblyError(f"Cannot write entry {key}: {e}") from e
                copied += len(chunk)
        return copied

    def _fetch_failed(self, writer: ZipArchiveWriter, key: str, error: FetchError) -> KeyResult:
        """Record a fetch failure for a buffered key, applying the policy."""
        if self.config.fetch_failure_policy is FetchFailurePolicy.OMIT:
            writer.release(key)
            self._warn(key, "failed", error, entry_written=False)
            return KeyResult.failed(key, str(error), entry_written=False)

        writer.write_entry(key, b"")
        self._warn(key, "failed", error, entry_written=True)
        return KeyResult.failed(key, str(error), entry_written=True)

    def _skip(self, key: str, error: EntryConflictError) -> KeyResult:
        self._warn(key, "skipped", error)
        return KeyResult.skipped(key, str(error))

    def _warn(self, key: str, status: str, error: Exception, **fields) -> None:
        log_with_context(
            logger, "warning", f"Key {key} {status}: {error}",
            run_id=self._run_id, key=key, status=status, **fields,
        )


def run_bundle(
    config: BundleConfig,
    source: ObjectStore,
    publisher: AccessPublisher,
    manifest_source: ManifestSource,
    renderer: Optional[IndexRenderer] = None,
) -> RunReport:
    """Run the pipeline once with the given collaborators."""
    return BundlePipeline(config, source, publisher, manifest_source, renderer).run()
