"""
Client for managing images in the local Docker image cache.
"""

from ..exceptions import ImagePullFailed, ImageRemoveFailed
from ..process import run_command


class DockerClient:
    """
    Client that pulls and removes images using the Docker command line.
    """
    def __init__(self, executable = 'docker', timeout = None):
        self.executable = executable
        self.timeout = timeout

    async def pull_image(self, name):
        """
        Pull the given image into the local cache.
        """
        result = await run_command(self.executable, 'pull', name, timeout = self.timeout)
        if not result.success:
            raise ImagePullFailed(f'{name}: {result.error_output}')

    async def rmi_image(self, name):
        """
        Remove the given image from the local cache.
        """
        result = await run_command(self.executable, 'rmi', name, timeout = self.timeout)
        if not result.success:
            raise ImageRemoveFailed(f'{name}: {result.error_output}')
