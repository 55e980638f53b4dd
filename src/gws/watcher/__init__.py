from .file_watcher import FileWatcher

__all__ = ["FileWatcher"]
