from streamgate.db.models.download_log import DownloadLog
from streamgate.db.models.episode import Episode
from streamgate.db.models.profile import Profile

__all__ = ["Episode", "Profile", "DownloadLog"]
