"""
Model generation driver.

Runs the emission pipeline for one entity: every hook is called on every
stage in pipeline order, then the collected class body is rendered into a
module through the ``model.py.j2`` template.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ...logging_config import get_logger
from .config import GeneratorConfig
from .emitter import SourceEmitter, docstring_text
from .errors import EmissionFailure, GeneratorError, SpecInconsistency
from .naming import (
    MODEL_RESERVED_NAMES,
    constant_name,
    getter_name,
    module_name,
    setter_name,
)
from .schema import EntitySpec, extract_entity_specs
from .slots import SlotAllocator
from .templates import TemplateEngine, TemplateError, create_template_engine

logger = get_logger(__name__)

MODEL_TEMPLATE = "model.py.j2"


class ModelGenerator:
    """Generates the model class for a single entity."""

    def __init__(
        self,
        spec: EntitySpec,
        config: Optional[GeneratorConfig] = None,
        stages: Optional[Sequence[Any]] = None,
    ):
        """
        Initialize the generator.

        Args:
            spec: Entity to generate
            config: Generator configuration (defaults if omitted)
            stages: Explicit pipeline; built from the global stage registry
                when omitted
        """
        self.spec = spec
        self.config = config or GeneratorConfig()

        if stages is None:
            from ..registry import get_registry

            stages = get_registry().build_pipeline(spec, self.config)
        self.stages = list(stages)

        self.emitter: Optional[SourceEmitter] = None
        self.allocator: Optional[SlotAllocator] = None
        self._template_engine: Optional[TemplateEngine] = None

    @property
    def template_engine(self) -> TemplateEngine:
        if self._template_engine is None:
            self._template_engine = create_template_engine()
        return self._template_engine

    @property
    def module_name(self) -> str:
        """File stem of the generated module."""
        return module_name(self.spec.name)

    # Pipeline queries

    def collect_imports(self):
        """Runtime names the generated module imports, across all stages."""
        from ..stages.base import ImportSet

        imports = ImportSet()
        for stage in self.stages:
            stage.collect_imports(imports)
        return imports

    def properties_array_length(self) -> int:
        """Slots reserved by all stages, not counting the row-id slot."""
        return sum(stage.properties_array_length() for stage in self.stages)

    def property_count(self) -> int:
        """Number of properties declared by the entity."""
        return len(self.spec.properties)

    # Generation

    def generate(self) -> str:
        """
        Generate the module source for the entity.

        Returns:
            Generated module source

        Raises:
            SpecInconsistency: If the stages emit an inconsistent class
            EmissionFailure: If the emitter is misused or rendering fails
        """
        logger.debug(
            "Generating %s with stages: %s",
            self.spec.name,
            ", ".join(stage.name for stage in self.stages),
        )

        self.emitter = SourceEmitter(
            self.config.indent_size,
            self.config.add_comments,
            reserved_methods=MODEL_RESERVED_NAMES,
        )
        self.allocator = SlotAllocator(self.config.properties_array_name)

        imports = self.collect_imports()

        for stage in self.stages:
            stage.emit_field_declarations(self.emitter)

        blocks = [
            self.allocator.reserve(stage.name, stage.properties_array_length())
            for stage in self.stages
        ]
        self.emitter.write_array_declaration(
            self.allocator.array_name, self.allocator.first_index + self.allocator.length
        )
        for stage, block in zip(self.stages, blocks):
            stage.emit_array_initialization(self.emitter, block)
            block.ensure_filled()

        for stage in self.stages:
            stage.emit_accessors(self.emitter)

        self._check_imports(imports)

        code = self._render_module(imports)
        self._check_syntax(code)
        return code

    def _check_imports(self, imports):
        unresolved = sorted(
            {
                declaration.type_name
                for declaration in self.emitter.field_declarations()
                if declaration.type_name not in imports
            }
        )
        if unresolved:
            raise SpecInconsistency(
                f"{self.spec.name} declares fields of types that are never "
                f"imported: {', '.join(unresolved)}"
            )

    def _check_syntax(self, code: str):
        try:
            compile(code, f"<{self.module_name}>", "exec")
        except SyntaxError as e:
            raise EmissionFailure(
                f"Generated code for {self.spec.name} is not valid Python "
                f"(line {e.lineno}): {e.msg}"
            ) from e

    def _render_module(self, imports) -> str:
        from ..stages.base import MODEL_BASE_CLASS

        context = {
            "add_header": self.config.add_header,
            "entity_name": self.spec.name,
            "table_name": self.spec.table_name,
            "runtime_module": self.config.runtime_module,
            "imports": imports.sorted(),
            "class_name": self.spec.name,
            "base_class": MODEL_BASE_CLASS,
            "description": self._docstring(),
            "indent": self.emitter.indent,
            "body_lines": self.emitter.render(),
        }
        try:
            return self.template_engine.render_template(MODEL_TEMPLATE, context)
        except TemplateError as e:
            raise EmissionFailure(f"Could not render {self.spec.name}: {e}") from e

    def _docstring(self) -> Optional[str]:
        if not (self.config.add_comments and self.spec.description):
            return None
        return docstring_text(self.spec.description)

    # Checks and formatting

    def validate(self) -> List[str]:
        """
        Check the entity for issues that do not prevent generation.

        Returns:
            List of warning messages (empty if no issues)
        """
        warnings = []
        if not self.spec.properties:
            warnings.append(f"Entity '{self.spec.name}' declares no properties")

        reserved = {
            self.config.table_constant_name: "the table constant",
            constant_name("rowid"): "the row id",
            self.config.properties_array_name: "the properties array",
        }
        reserved_methods = dict.fromkeys(MODEL_RESERVED_NAMES, "a TableModel method")
        if self.spec.syncable:
            from ..stages.sync import SYNC_METHOD_NAMES, SYNC_PROPERTIES

            for prop in SYNC_PROPERTIES:
                reserved[constant_name(prop.name)] = "a sync column"
            reserved_methods.update(dict.fromkeys(SYNC_METHOD_NAMES, "a sync method"))

        seen_columns = {}
        for prop in self.spec.properties:
            constant = constant_name(prop.name)
            if constant in reserved:
                warnings.append(
                    f"Property {self.spec.name}.{prop.name} collides with "
                    f"{reserved[constant]} ({constant})"
                )
            for method in (getter_name(prop.name), setter_name(prop.name)):
                if method in reserved_methods:
                    warnings.append(
                        f"Property {self.spec.name}.{prop.name} collides with "
                        f"{reserved_methods[method]} ({method})"
                    )
            if prop.column_name in seen_columns:
                warnings.append(
                    f"Properties {self.spec.name}.{seen_columns[prop.column_name]} and "
                    f"{self.spec.name}.{prop.name} share column '{prop.column_name}'"
                )
            seen_columns.setdefault(prop.column_name, prop.name)

        return warnings

    def format_code(self, code: str) -> str:
        """
        Normalize whitespace of generated code.

        Strips trailing spaces, collapses runs of more than two blank lines,
        ends the module with exactly one newline and applies the configured
        line ending.
        """
        lines = code.split("\n")
        formatted_lines = []
        blank_count = 0

        for line in lines:
            stripped = line.rstrip()
            if not stripped:
                blank_count += 1
                if blank_count <= 2:
                    formatted_lines.append("")
            else:
                blank_count = 0
                formatted_lines.append(stripped)

        while formatted_lines and not formatted_lines[-1]:
            formatted_lines.pop()

        return self.config.line_ending.join(formatted_lines) + self.config.line_ending


class GenerationResult:
    """Container for generation results and metadata."""

    def __init__(
        self,
        code: str,
        warnings: List[str] = None,
        metadata: Dict[str, Any] = None,
        entity_name: Optional[str] = None,
    ):
        """
        Initialize generation result.

        Args:
            code: Generated code
            warnings: Any warnings from generation
            metadata: Additional metadata about generation
            entity_name: Name of the generated class
        """
        self.code = code
        self.warnings = warnings or []
        self.metadata = metadata or {}
        self.entity_name = entity_name
        self.success = True
        self.error_message: Optional[str] = None
        self.exception: Optional[Exception] = None

    @classmethod
    def error(
        cls,
        message: str,
        exception: Exception = None,
        entity_name: Optional[str] = None,
    ) -> "GenerationResult":
        """Create a failed generation result."""
        result = cls(code="", entity_name=entity_name)
        result.success = False
        result.error_message = message
        result.exception = exception
        return result


def generate_code(generator: ModelGenerator) -> GenerationResult:
    """
    Generate one model with error handling.

    Args:
        generator: Generator for the entity

    Returns:
        GenerationResult with code, warnings, and metadata
    """
    name = generator.spec.name
    try:
        warnings = generator.validate()
        code = generator.format_code(generator.generate())

        metadata = {
            "entity": name,
            "table": generator.spec.table_name,
            "module": generator.module_name,
            "syncable": generator.spec.syncable,
            "stages": [stage.name for stage in generator.stages],
            "property_count": generator.property_count(),
            "properties_array_length": generator.properties_array_length(),
            "imports": generator.collect_imports().sorted(),
        }
        for warning in warnings:
            logger.warning(warning)

        return GenerationResult(code, warnings, metadata, entity_name=name)

    except GeneratorError as e:
        logger.error("Generation of %s failed: %s", name, e)
        return GenerationResult.error(
            f"Generation of {name} failed: {e}", exception=e, entity_name=name
        )


def generate_from_document(
    document: Any, config: Optional[GeneratorConfig] = None
) -> Dict[str, GenerationResult]:
    """
    Generate a model for every entity declared in a loaded document.

    Entities are generated independently; a failing entity yields a failed
    result and does not stop the others.

    Raises:
        EntitySpecError: If the document itself is malformed
    """
    specs = extract_entity_specs(document)
    logger.info("Generating %d model(s)", len(specs))

    results = {}
    for spec in specs:
        results[spec.name] = generate_code(ModelGenerator(spec, config))
    return results


def write_results(
    results: Dict[str, GenerationResult], output_dir: Union[str, Path]
) -> List[Path]:
    """
    Write every successful result to ``<output_dir>/<module>.py``.

    Returns:
        Paths of the written files

    Raises:
        EmissionFailure: If the directory or a file cannot be written
    """
    output_path = Path(output_dir)
    try:
        output_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise EmissionFailure(f"Cannot create output directory {output_path}: {e}") from e

    written = []
    for name, result in results.items():
        if not result.success:
            continue
        target = output_path / f"{result.metadata.get('module') or module_name(name)}.py"
        try:
            # newline="" keeps the configured line ending as generated
            with open(target, "w", encoding="utf-8", newline="") as f:
                f.write(result.code)
        except OSError as e:
            raise EmissionFailure(f"Cannot write {target}: {e}") from e
        logger.info("Wrote %s", target)
        written.append(target)

    return written
