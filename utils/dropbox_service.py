import logging
import dropbox
from dropbox.exceptions import ApiError
from flask import current_app

logger = logging.getLogger(__name__)

_client = None


class StorageUnavailable(RuntimeError):
    pass


def get_client():
    """Create the Dropbox client with auto-refresh on first use."""
    global _client
    if _client is not None:
        return _client

    app_key = current_app.config.get("DROPBOX_APP_KEY")
    app_secret = current_app.config.get("DROPBOX_APP_SECRET")
    refresh_token = current_app.config.get("DROPBOX_REFRESH_TOKEN")
    if not all([app_key, app_secret, refresh_token]):
        raise StorageUnavailable(
            "Missing Dropbox credentials! Set DROPBOX_APP_KEY, DROPBOX_APP_SECRET, and DROPBOX_REFRESH_TOKEN."
        )

    _client = dropbox.Dropbox(
        oauth2_refresh_token=refresh_token,
        app_key=app_key,
        app_secret=app_secret
    )
    return _client


def build_path(folder, filename):
    root = current_app.config.get("DROPBOX_ROOT_FOLDER", "/ClassQuiz").rstrip("/")
    return f"{root}/{folder}/{filename}"


def upload_bytes(content, filename, folder="leaderboards"):
    """Upload raw bytes and return (public_url, dropbox_path), or (None, None) on API errors."""
    dbx = get_client()
    dropbox_path = build_path(folder, filename)

    try:
        dbx.files_upload(content, dropbox_path, mode=dropbox.files.WriteMode("overwrite"))

        shared_link = None
        try:
            existing_links = dbx.sharing_list_shared_links(path=dropbox_path).links
            if existing_links:
                shared_link = existing_links[0]
        except ApiError as e:
            logger.warning("Could not list shared links for %s: %s", dropbox_path, e)

        if not shared_link:
            shared_link = dbx.sharing_create_shared_link_with_settings(dropbox_path)

        public_url = shared_link.url.replace("?dl=0", "?raw=1")
        return public_url, dropbox_path

    except ApiError as e:
        logger.error("Dropbox API error while uploading %s: %s", dropbox_path, e)
        return None, None


def delete_file_from_dropbox(dropbox_path):
    root = current_app.config.get("DROPBOX_ROOT_FOLDER", "/ClassQuiz").rstrip("/") + "/"
    if not dropbox_path or not dropbox_path.startswith(root):
        logger.warning("Refusing to delete path outside %s: %s", root, dropbox_path)
        return False

    try:
        get_client().files_delete_v2(dropbox_path)
        logger.info("File deleted from Dropbox: %s", dropbox_path)
        return True
    except StorageUnavailable as e:
        logger.warning("Skipping Dropbox delete of %s: %s", dropbox_path, e)
        return False
    except ApiError as e:
        logger.error("Dropbox API error while deleting %s: %s", dropbox_path, e)
        return False
