"""RemoteFile: download an artifact to a local path."""

import logging
from dataclasses import dataclass

from clients import GithubArtifactDownloader
from config import reject_unknown
from errors import ConfigError
from render import InputParams, bound_field

logger = logging.getLogger(__name__)


@dataclass
class RemoteFile:
    """Remote artifact (URL, or asset name when repo/tag name a GitHub release)."""
    remote_path: str = bound_field(template=True)
    local_path: str = bound_field(template=True)
    repo: str = ''
    tag: str = bound_field(key='Version', template=True)

    @classmethod
    def from_dict(cls, data: dict) -> 'RemoteFile':
        reject_unknown(data, ('remotePath', 'localPath', 'repo', 'tag'), 'remoteFile')
        return cls(
            remote_path=str(data.get('remotePath', '')),
            local_path=str(data.get('localPath', '')),
            repo=str(data.get('repo', '')),
            tag=str(data.get('tag', '')),
        )

    def ensure(self, params: InputParams) -> None:
        remote = params.render_fields(self)
        if not remote.remote_path or not remote.local_path:
            raise ConfigError("remoteFile requires remotePath and localPath")
        if params.artifact_downloader is None and remote.repo:
            downloader = GithubArtifactDownloader(remote.repo, remote.tag)
        else:
            downloader = params.get_artifact_downloader()
        downloader.download(remote.remote_path, remote.local_path)

    def teardown(self, params: InputParams) -> None:
        logger.debug(f"Nothing to tear down for remote file {self.remote_path}")

    def render(self, params: InputParams) -> list[dict]:
        return []
