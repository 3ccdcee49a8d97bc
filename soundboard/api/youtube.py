"""
Fallback video lookup for Soundboard Work.
Finds a YouTube video id for a queued track through public Invidious
mirrors, so tabs without Spotify can still play the queue.
"""

import logging
import threading
from urllib.parse import quote
import requests
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

DEFAULT_MIRRORS = (
    "https://inv.nadeko.net",
    "https://invidious.nerdvpn.de",
    "https://invidious.privacyredirect.com",
    "https://vid.puffyan.us",
    "https://invidious.projectsegfau.lt",
)
DEFAULT_TIMEOUT = 5


def build_query(artist, title):
    return f"{artist} - {title} official"


def find_video_id(artist, title, mirrors=DEFAULT_MIRRORS, timeout=DEFAULT_TIMEOUT):
    """First video id any mirror returns, or None when every mirror fails"""
    search_query = build_query(artist, title)

    for mirror in mirrors:
        url = f"{mirror.rstrip('/')}/api/v1/search?q={quote(search_query)}&type=video"
        try:
            logger.debug(f"Trying Invidious instance: {mirror}")
            response = requests.get(url, headers={"User-Agent": "Mozilla/5.0"}, timeout=timeout)
            if response.status_code != 200:
                logger.info(f"Instance {mirror} returned {response.status_code}")
                continue
            results = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Error with instance {mirror}: {e}")
            continue

        if isinstance(results, list) and results and isinstance(results[0], dict):
            video_id = results[0].get("videoId")
            if video_id:
                logger.info(f"Found video {video_id} for '{search_query}' on {mirror}")
                return video_id

    logger.info(f"No mirror found a video for '{search_query}'")
    return None


def attach_video_id(store, entry, mirrors=DEFAULT_MIRRORS, timeout=DEFAULT_TIMEOUT):
    """Look up the fallback video for a queued entry and patch it in"""
    video_id = find_video_id(entry.artist, entry.title, mirrors=mirrors, timeout=timeout)
    if video_id is None:
        return None
    try:
        return store.set_alt_source(entry.id, video_id)
    except SQLAlchemyError as e:
        logger.error(f"Could not store video id for '{entry.title}': {e}")
        return None


def start_lookup(store, entry, mirrors=DEFAULT_MIRRORS, timeout=DEFAULT_TIMEOUT):
    """Fire-and-forget lookup; the entry is already queued and playable on Spotify"""
    thread = threading.Thread(
        target=attach_video_id,
        args=(store, entry),
        kwargs={"mirrors": mirrors, "timeout": timeout},
        name=f"youtube-lookup-{entry.id}",
        daemon=True,
    )
    thread.start()
    return thread
