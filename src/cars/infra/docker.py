"""Image Builder Adapter backed by the docker CLI."""

from pathlib import Path
from typing import Protocol

from src.cars.core.logging import get_logger
from src.cars.infra.process import run_command
from src.cars.models.enums import DeployTarget

logger = get_logger(__name__)

FRONTEND_DOCKERFILE = """FROM nginx:alpine
COPY . /usr/share/nginx/html
EXPOSE 80
"""

BACKEND_DOCKERFILE = """FROM node:22-alpine
WORKDIR /app
COPY package*.json ./
RUN npm install
COPY . .
RUN npm run build --if-present
ENV PORT=8080
EXPOSE 8080
CMD ["npm", "start"]
"""


class BuildError(Exception):
    """Image build or push failed."""

    def __init__(self, target: DeployTarget, stage: str, detail: str):
        super().__init__(f"{target.value} image {stage} failed: {detail}")
        self.target = target
        self.stage = stage
        self.detail = detail


class ImageBuilder(Protocol):
    async def build_and_publish(
        self, source_dir: Path, target: DeployTarget, image_ref: str
    ) -> str: ...


def image_reference(registry: str, project_external_id: str, target: DeployTarget, tag: str) -> str:
    """{registry}/cars-project-{project}/{target}:{tag}"""
    return f"{registry}/cars-project-{project_external_id}/{target.value}:{tag}"


class DockerImageBuilder:
    """Builds a target directory into an image and pushes it to the registry."""

    def __init__(self, docker_binary: str = "docker", timeout_seconds: float | None = None):
        self.docker_binary = docker_binary
        self.timeout_seconds = timeout_seconds

    def _prepare(self, source_dir: Path, target: DeployTarget) -> None:
        dockerfile = source_dir / "Dockerfile"
        if target is DeployTarget.FRONTEND:
            # Frontends are static bundles served by nginx
            dockerfile.write_text(FRONTEND_DOCKERFILE)
        elif not dockerfile.exists():
            dockerfile.write_text(BACKEND_DOCKERFILE)

    async def build_and_publish(
        self, source_dir: Path, target: DeployTarget, image_ref: str
    ) -> str:
        """Build and push; returns the pushed image reference.

        Raises:
            BuildError: with the failing stage and the tail of the tool output
        """
        self._prepare(source_dir, target)

        logger.info("Building image", target=target.value, image=image_ref)
        build = await run_command(
            self.docker_binary,
            "build",
            "-t",
            image_ref,
            ".",
            cwd=source_dir,
            timeout=self.timeout_seconds,
        )
        if not build.ok:
            raise BuildError(target, "build", build.tail())

        push = await run_command(
            self.docker_binary, "push", image_ref, timeout=self.timeout_seconds
        )
        if not push.ok:
            raise BuildError(target, "push", push.tail())

        logger.info("Image published", target=target.value, image=image_ref)
        return image_ref
