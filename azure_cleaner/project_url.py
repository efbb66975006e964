# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from dataclasses import dataclass, field
from typing import Final, Self
from urllib.parse import urlsplit

AZURE_DEVOPS_HOST: Final = "dev.azure.com"
VISUAL_STUDIO_HOST_SUFFIX: Final = "visualstudio.com"
PROJECTS_API_SEGMENT: Final = "_apis/projects/"


class InvalidProjectUrlError(ValueError):
    pass


@dataclass(frozen=True)
class AzdoProjectUrl:
    """Normalized Azure DevOps project URL, used as the key when looking up access tokens.

    Both `https://dev.azure.com/{org}/{project}` and `https://{org}.visualstudio.com/{project}` are accepted,
    along with the `_apis/projects/{id}` and `_git/{repo}` forms that service hooks send.
    """

    url: str
    organization_name: str = field(compare=False)
    organization_url: str = field(compare=False)
    project_id_or_name: str = field(compare=False)

    @classmethod
    def parse(cls, value: str) -> Self:
        try:
            parts = urlsplit(value.strip())
            host = parts.hostname or ""
            port = parts.port
        except ValueError as e:
            raise InvalidProjectUrlError(f"Error parsing: '{value}' into components") from e

        scheme = (parts.scheme or "https").lower()
        netloc = host if port is None else f"{host}:{port}"
        segments = parts.path.replace(PROJECTS_API_SEGMENT, "").split("/")
        try:
            if host == AZURE_DEVOPS_HOST:
                organization_name = parts.path.split("/")[1]
                project = segments[2]
                organization_url = f"{scheme}://{netloc}/{organization_name}/"
            elif host.endswith(VISUAL_STUDIO_HOST_SUFFIX):
                organization_name = host.split(".")[0]
                project = segments[1]
                organization_url = f"{scheme}://{netloc}/"
            else:
                raise InvalidProjectUrlError(f"Error parsing: '{value}' into components")
        except IndexError as e:
            raise InvalidProjectUrlError(f"Error parsing: '{value}' into components") from e

        if not organization_name or not project:
            raise InvalidProjectUrlError(f"Error parsing: '{value}' into components")

        return cls(
            url=organization_url + project,
            organization_name=organization_name,
            organization_url=organization_url,
            project_id_or_name=project,
        )

    @classmethod
    def create(cls, hostname: str, organization_name: str, project_id_or_name: str) -> Self:
        hostname = hostname.lower()
        if hostname == AZURE_DEVOPS_HOST:
            return cls.parse(f"https://{hostname}/{organization_name}/{project_id_or_name}")
        if hostname.endswith(VISUAL_STUDIO_HOST_SUFFIX):
            return cls.parse(f"https://{hostname}/{project_id_or_name}")
        raise InvalidProjectUrlError(f"The hostname '{hostname}' cannot be used for creation.")

    def __str__(self) -> str:
        return self.url
