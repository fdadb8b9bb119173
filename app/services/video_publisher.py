import re
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.video_asset import VideoAsset, AssetStatus

_YOUTUBE_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/shorts/)([^&\n?#/]+)"),
    re.compile(r"youtube\.com/.*[?&]v=([^&\n?#]+)"),
]

def pick_video_url(asset: VideoAsset | None) -> str | None:
    """YouTube primero (preview en WhatsApp), Mux como respaldo."""
    if asset is None:
        return None
    return (asset.youtube_url or "").strip() or (asset.mux_url or "").strip() or None

def resolve_video_url(db: Session, content_id: int) -> str | None:
    """URL reproducible de la lección (o None si todavía no hay video publicado)."""
    asset = db.execute(
        select(VideoAsset).where(VideoAsset.content_id == content_id)
    ).scalar_one_or_none()
    return pick_video_url(asset)

def extract_youtube_id(url: str | None) -> str | None:
    if not url:
        return None
    for pattern in _YOUTUBE_PATTERNS:
        m = pattern.search(url)
        if m and m.group(1):
            return m.group(1)
    return None

def youtube_watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"

def is_direct_media(url: str | None) -> bool:
    """Archivos servidos tal cual (mp4) se mandan como media; links de YouTube como texto."""
    return bool(url) and url.lower().split("?")[0].endswith(".mp4")

def set_youtube_video(db: Session, asset: VideoAsset, *, url: str | None = None, video_id: str | None = None) -> VideoAsset:
    """Completa url <-> id y deja el asset de YouTube como 'ready'."""
    video_id = video_id or extract_youtube_id(url)
    if not url and video_id:
        url = youtube_watch_url(video_id)
    if not url:
        raise ValueError("youtubeUrl o youtubeVideoId requerido")
    asset.youtube_url = url
    asset.youtube_video_id = video_id
    asset.youtube_status = AssetStatus.ready.value
    db.add(asset)
    return asset
