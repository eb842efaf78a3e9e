"""
Transcoding Engine

Turns a claimed task into a published, encrypted HLS tree:

    claimed → source-resolved → (remuxed) → probed → encoded per variant
            → master playlist written → published

Any step may raise a TranscodeError (or a storage / key error); the caller
records it on the task. Nothing here touches task status.
"""
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from sqlalchemy.orm import Session

from vod_pipeline.config import Settings, get_settings
from vod_pipeline.exceptions import NotFound, PublishFailed, SourceNotFound, StorageError
from vod_pipeline.models import ProcessingTask, StorageProvider, Video
from vod_pipeline.services.ffmpeg.encoder import HlsEncoder, write_key_info
from vod_pipeline.services.ffmpeg.params import VariantSpec, plan_variants, select_encode_params
from vod_pipeline.services.ffmpeg.playlist import MASTER_PLAYLIST_NAME, write_master_playlist
from vod_pipeline.services.ffmpeg.remux import needs_remux, remux_recording
from vod_pipeline.services.key_store import KeyStore, get_key_store
from vod_pipeline.services.storage import get_storage_backend, join_key, video_key_prefix
from vod_pipeline.services.video_metadata import VideoMetadata

logger = logging.getLogger(__name__)

SOURCE_CANDIDATES = ("input.mp4", "input.webm")


@dataclass
class TranscodeResult:
    size_bytes: int
    duration_seconds: Optional[float]
    variants: List[VariantSpec] = field(default_factory=list)
    published_prefix: Optional[str] = None


def directory_size(path: Path) -> int:
    return sum(p.stat().st_size for p in path.rglob("*") if p.is_file())


class TranscodingEngine:
    """Runs one task from source to published output"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        key_store: Optional[KeyStore] = None,
        metadata: Optional[VideoMetadata] = None,
        encoder: Optional[HlsEncoder] = None,
    ):
        self.settings = settings or get_settings()
        self.key_store = key_store or get_key_store(self.settings)
        self.metadata = metadata or VideoMetadata(self.settings.ffprobe_path)
        self.encoder = encoder or HlsEncoder(self.settings)

    def work_dir_for(self, task: ProcessingTask) -> Path:
        """Scratch directory, namespaced per task so concurrent workers never collide"""
        return Path(self.settings.work_dir).resolve() / str(task.id)

    def key_uri(self, video: Video) -> str:
        return f"{self.settings.key_uri_path}?id={video.id}"

    def process(self, db: Session, task: ProcessingTask) -> TranscodeResult:
        video = db.get(Video, task.video_id)
        if video is None:
            raise NotFound(f"Video {task.video_id} not found")

        work_dir = self.work_dir_for(task)
        if work_dir.exists():
            shutil.rmtree(work_dir)
        work_dir.mkdir(parents=True)

        try:
            source = self.resolve_source(video, work_dir)
            logger.info(f"Task {task.id}: source resolved at {source}")

            if needs_remux(source):
                source = remux_recording(source, work_dir, self.settings.ffmpeg_path)

            probe = self.metadata.probe(str(source))
            params = select_encode_params(task.codec_preference, task.crf, self.settings)
            variants = plan_variants(probe, task.resolutions)

            key_path = self.key_store.get_key_as_local_file(video.id, work_dir / "key")
            key_info_path = write_key_info(work_dir, self.key_uri(video), key_path)

            output_dir = self.output_dir_for(video, work_dir)
            output_dir.mkdir(parents=True, exist_ok=True)

            for variant in variants:
                self.encoder.encode_variant(source, output_dir, variant, params, key_info_path, probe.has_audio)

            write_master_playlist(output_dir, variants, params.encoder, probe.has_audio)
            logger.info(f"Task {task.id}: master playlist written to {output_dir / MASTER_PLAYLIST_NAME}")

            size_bytes = self.output_size(output_dir, variants)
            published_prefix = self.publish(video, output_dir)

            return TranscodeResult(
                size_bytes=size_bytes,
                duration_seconds=probe.duration_seconds,
                variants=variants,
                published_prefix=published_prefix,
            )
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

    def resolve_source(self, video: Video, work_dir: Path) -> Path:
        """
        Locate the input file

        A directory storage_path holds input.mp4 (preferred) or input.webm.
        For object-store videos whose staging area is not on this machine the
        same names are looked up under storage_path in the bucket and
        downloaded into the work directory.
        """
        path = Path(video.storage_path)
        if path.is_dir():
            for name in SOURCE_CANDIDATES:
                candidate = path / name
                if candidate.is_file():
                    return candidate
            raise SourceNotFound(f"Source file not found in {path}")
        if path.is_file():
            return path

        if video.is_object_store and self.settings.r2_configured:
            store = get_storage_backend(StorageProvider.OBJECT_STORE, self.settings)
            for name in SOURCE_CANDIDATES:
                key = join_key(video.storage_path, name)
                if store.exists(key):
                    logger.info(f"Downloading source {key} from object storage")
                    return store.download_to_path(key, work_dir / "source" / name)

        raise SourceNotFound(f"Source file not found at {video.storage_path}")

    def output_dir_for(self, video: Video, work_dir: Path) -> Path:
        """Local videos are written in place under the public directory; remote ones are staged in work_dir"""
        if video.is_object_store:
            return work_dir / "output"
        return Path(self.settings.public_videos_dir).resolve() / str(video.id)

    def output_size(self, output_dir: Path, variants: List[VariantSpec]) -> int:
        size = (output_dir / MASTER_PLAYLIST_NAME).stat().st_size
        for variant in variants:
            size += directory_size(output_dir / variant.name)
        return size

    def publish(self, video: Video, output_dir: Path) -> Optional[str]:
        """
        Upload the output tree for object-store videos and drop the staging directory

        Returns:
            The remote prefix, or None for local videos
        """
        if not video.is_object_store:
            return None

        if not video.r2_key:
            video.r2_key = video_key_prefix(video.owner_id, video.id, video.lesson_id)

        try:
            store = get_storage_backend(StorageProvider.OBJECT_STORE, self.settings)
            store.upload_directory(output_dir, video.r2_key)
        except StorageError as e:
            raise PublishFailed(f"Failed to publish output to object storage: {e}") from e

        staging = Path(video.storage_path)
        if staging.is_dir():
            try:
                shutil.rmtree(staging)
                logger.info(f"Removed staging directory {staging}")
            except OSError as e:
                logger.warning(f"Could not remove staging directory {staging}: {e}")
        return video.r2_key
