"""Models for generation data files."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class GenerationConfig(BaseModel):
    """Contents of a YAML data file handed to a template.

    ```yaml
    name: Versions
    file: versions
    bindings:
      versions: [...]
    ```
    """

    name: str
    file: Optional[str] = None
    bindings: dict[str, Any] = Field(default_factory=dict)

    @property
    def output_filename(self) -> str:
        return self.file or self.name.lower()


class TemplateInfo(BaseModel):
    """A template file found on disk."""

    filename: str
    output_ext: str
    path: str

    @property
    def stem(self) -> str:
        return self.filename.split(".", 1)[0]
