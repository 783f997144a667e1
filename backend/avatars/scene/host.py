"""
Editor Host - State of the environment running the pipeline

Builds are refused while the host is recompiling its own code or running
content in play mode.
"""
from avatars.schemas import Platform, current_platform


class EditorHost:
    """Host environment flags read by the prerequisite validator"""

    def __init__(self, is_compiling: bool = False, is_playing: bool = False, platform: Platform = None):
        self.is_compiling = is_compiling
        self.is_playing = is_playing
        self.platform = platform if platform is not None else current_platform()

    def __repr__(self):
        return (
            f"<EditorHost compiling={self.is_compiling} "
            f"playing={self.is_playing} platform={self.platform.value}>"
        )


__all__ = ["EditorHost"]
