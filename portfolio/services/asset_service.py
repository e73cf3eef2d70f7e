from pathlib import Path

from portfolio.utils.file_lock import locked_json_write, read_json, write_json
from portfolio.utils.helpers import generate_upload_name, now_iso

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
ALLOWED_VIDEO_TYPES = {"video/mp4", "video/webm", "video/ogg", "video/mov", "video/quicktime"}
ALLOWED_TYPES = ALLOWED_IMAGE_TYPES | ALLOWED_VIDEO_TYPES


def allowed_type(mimetype):
    return mimetype in ALLOWED_TYPES


def artwork_kind(mimetype):
    return "video" if mimetype in ALLOWED_VIDEO_TYPES else "image"


class AssetStore:
    """Uploaded files plus the about.json and portfolio.json documents."""

    def __init__(self, uploads_dir, data_dir):
        self.uploads_dir = Path(uploads_dir)
        self.about_file = Path(data_dir) / "about.json"
        self.portfolio_file = Path(data_dir) / "portfolio.json"

    def _save_upload(self, section, file):
        """Save a werkzeug FileStorage under uploads/<section>/. Returns its public URL."""
        target_dir = self.uploads_dir / section
        target_dir.mkdir(parents=True, exist_ok=True)
        filename = generate_upload_name(Path(file.filename or "").suffix)
        file.save(target_dir / filename)
        return f"/uploads/{section}/{filename}"

    def save_about(self, file):
        url = self._save_upload("about", file)
        about = {"image": url, "uploaded_at": now_iso()}
        write_json(self.about_file, about)
        return about

    def get_about(self):
        about = read_json(self.about_file, default=dict)
        return about or {"image": ""}

    def add_portfolio_item(self, file):
        url = self._save_upload("portfolio", file)
        with locked_json_write(self.portfolio_file) as items:
            # Millisecond ids, bumped past the last one on collision
            item_id = int(Path(url).stem.split("-")[0])
            if items and item_id <= items[-1]["id"]:
                item_id = items[-1]["id"] + 1
            item = {
                "id": item_id,
                "url": url,
                "uploaded_at": now_iso(),
                "file_type": file.mimetype,
            }
            items.append(item)
        return item

    def list_portfolio(self):
        return read_json(self.portfolio_file)

    def delete_portfolio_item(self, item_id):
        """Remove an item and its file. Returns True if something was removed."""
        with locked_json_write(self.portfolio_file) as items:
            doomed = [p for p in items if str(p["id"]) == str(item_id)]
            items[:] = [p for p in items if str(p["id"]) != str(item_id)]

        for item in doomed:
            path = self.uploads_dir / item["url"].replace("/uploads/", "", 1)
            if path.resolve().is_relative_to(self.uploads_dir.resolve()) and path.exists():
                path.unlink()
        return bool(doomed)
