"""Generation runs: YAML data in, rendered files out."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .models import GenerationConfig
from .template import Template
from .templates import parse_template_name

DATA_SUFFIXES = (".yml", ".yaml")


class CodeGenerator:
    """Renders a set of templates against the bindings of one data file.

    Templates are compiled on first use and kept for the lifetime of the
    generator, so rendering several data files through one instance compiles
    each template only once. Output files are named after the data file's
    ``file`` (or ``name``) plus the extension encoded in the template name.

    Example:
        >>> from ttgen.generator import CodeGenerator
        >>>
        >>> code_gen = CodeGenerator(Path("output"))
        >>> filenames = code_gen.generate_from_file(
        ...     Path("versions.yml"), templates=[Path("versions.rs.tt")]
        ... )
    """

    def __init__(self, output_path: Path):
        """Initialize the code generator.

        Args:
            output_path: Path to the output directory.
        """
        self.output_path = Path(output_path).resolve()
        self._templates: dict[Path, Template] = {}
        self._log = logging.getLogger("ttgen")

    def load_data(self, data_path: Path) -> dict[str, Any]:
        """Read a YAML data file into the mapping a configuration is built from.

        An empty data file yields an empty mapping, which then fails
        validation for lack of a ``name``.

        Raises:
            FileNotFoundError: If ``data_path`` is not an existing ``.yml`` or
                ``.yaml`` file.
            RuntimeError: If the file is not valid YAML or its top level is
                not a mapping.
        """
        data_path = Path(data_path).resolve()
        if not data_path.is_file() or data_path.suffix not in DATA_SUFFIXES:
            raise FileNotFoundError(f"No YAML data file at {data_path}")

        self._log.info(f"Reading bindings from {data_path.as_posix()}")
        try:
            data = yaml.safe_load(data_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise RuntimeError(f"Data file {data_path.name} is not valid YAML") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise RuntimeError(
                f"Data file {data_path.name} must hold a mapping, "
                f"not {type(data).__name__}"
            )
        return data

    def validate(self, data: dict[str, Any]) -> GenerationConfig:
        """Validate YAML data against the data file schema.

        Raises:
            RuntimeError: If validation fails.
        """
        self._log.debug("Validating generation data")

        try:
            return GenerationConfig.model_validate(data)
        except Exception as e:
            self._log.error(f"Failed to validate generation data: {e}")
            raise RuntimeError("Failed to validate generation data") from e

    def prepare_output_dir(self) -> Path:
        """Create the output directory, but never its missing parents.

        Raises:
            FileNotFoundError: If the directory that should contain the
                output directory is missing.
        """
        if not self.output_path.parent.is_dir():
            raise FileNotFoundError(
                f"Cannot create {self.output_path.name}: "
                f"{self.output_path.parent} is not a directory"
            )
        if not self.output_path.is_dir():
            self._log.debug(f"Creating output directory {self.output_path}")
            self.output_path.mkdir(exist_ok=True)
        return self.output_path

    def load_template(self, template_path: Path) -> Template:
        """Compile a template file, reusing earlier compilations."""
        template_path = Path(template_path).resolve()
        if template_path not in self._templates:
            self._log.debug(f"Compiling template {template_path.as_posix()}")
            self._templates[template_path] = Template.from_file(template_path)
        return self._templates[template_path]

    def bindings_for(self, config: GenerationConfig) -> dict[str, Any]:
        """Bindings passed to every template for a configuration."""
        bindings: dict[str, Any] = {
            "name": config.name,
            "generated_on": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        }
        bindings.update(config.bindings)
        return bindings

    def render(self, config: GenerationConfig, template_path: Path) -> str:
        """Render one template with a configuration's bindings."""
        template = self.load_template(template_path)
        return template.render(self.bindings_for(config))

    def render_to_file(
        self,
        config: GenerationConfig,
        template_path: Path,
        suffix: str | None = None,
    ) -> str:
        """Render a template and write the result to the output directory.

        Args:
            config: Validated configuration.
            template_path: Template file to render.
            suffix: Optional filename suffix, used when several templates
                generate the same extension.

        Returns:
            The generated filename.
        """
        template_path = Path(template_path)
        output_ext = parse_template_name(template_path.name) or "txt"
        content = self.render(config, template_path)

        if suffix:
            filename = f"{config.output_filename}_{suffix}.{output_ext}"
        else:
            filename = f"{config.output_filename}.{output_ext}"
        output_file = self.output_path / filename

        self._log.debug(f"Writing {output_ext} output to '{filename}'")
        with open(output_file, "w") as f:
            f.write(content)

        return filename

    def generate(
        self, config: GenerationConfig, templates: list[Path] | None = None
    ) -> list[str]:
        """Render every template for a validated configuration.

        Returns:
            List of generated filenames.
        """
        if templates is None:
            templates = []

        self.prepare_output_dir()

        self._log.info(f"Writing outputs to {self.output_path.as_posix()}")
        ext_counts: dict[str, int] = {}
        for path in templates:
            ext = parse_template_name(Path(path).name) or "txt"
            ext_counts[ext] = ext_counts.get(ext, 0) + 1

        filenames = []
        for path in templates:
            path = Path(path)
            ext = parse_template_name(path.name) or "txt"
            # Same-extension templates are told apart by their stem
            suffix = path.name.split(".", 1)[0] if ext_counts[ext] > 1 else None
            filenames.append(self.render_to_file(config, path, suffix))

        self._log.info(f"Wrote {len(filenames)} files: {', '.join(filenames)}")
        return filenames

    def generate_from_file(
        self, input_path: Path, templates: list[Path] | None = None
    ) -> list[str]:
        """Parse a YAML data file and generate output files.

        This is the main entry point for file-based generation.
        """
        data = self.load_data(input_path)
        config = self.validate(data)
        return self.generate(config, templates)
