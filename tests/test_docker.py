from unittest import mock

import pytest

from readiness.scanner.exceptions import ImagePullFailed, ImageRemoveFailed
from readiness.scanner.image import docker
from readiness.scanner.image.docker import DockerClient
from readiness.scanner.process import CommandResult


@pytest.fixture
def run_command():
    with mock.patch.object(docker, 'run_command', new_callable = mock.AsyncMock) as run_command:
        yield run_command


@pytest.mark.asyncio
async def test_pull_image(run_command):
    run_command.return_value = CommandResult(0, '', '', False)
    await DockerClient(timeout = 600).pull_image('alpine:3.19')
    run_command.assert_awaited_once_with('docker', 'pull', 'alpine:3.19', timeout = 600)


@pytest.mark.asyncio
async def test_pull_image_failure(run_command):
    run_command.return_value = CommandResult(1, '', 'pull access denied for private/app\n', False)
    with pytest.raises(ImagePullFailed) as excinfo:
        await DockerClient().pull_image('private/app:1')
    assert 'private/app:1' in str(excinfo.value)
    assert 'pull access denied' in str(excinfo.value)


@pytest.mark.asyncio
async def test_rmi_image(run_command):
    run_command.return_value = CommandResult(0, '', '', False)
    await DockerClient(executable = 'podman').rmi_image('alpine:3.19')
    run_command.assert_awaited_once_with('podman', 'rmi', 'alpine:3.19', timeout = None)


@pytest.mark.asyncio
async def test_rmi_image_failure(run_command):
    run_command.return_value = CommandResult(1, '', 'image is being used by running container', False)
    with pytest.raises(ImageRemoveFailed, match = 'being used'):
        await DockerClient().rmi_image('alpine:3.19')
