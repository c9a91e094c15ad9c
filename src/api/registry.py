"""Name-keyed registration and invocation of definitions and templates."""

import threading
from collections.abc import Mapping

import structlog

from src.api.executor import execute
from src.api.loader import load_definitions, load_templates
from src.api.models import Definition
from src.api.template import Template
from src.cache.memory import MemoryCache
from src.transport.client import Transport
from src.transport.context import ExecutionContext
from src.transport.models import TransportResponse


logger = structlog.get_logger()

DEFINITIONS_STORE = "api-definitions"
TEMPLATES_STORE = "api-templates"


class ApiRegistry:
    """Registers definitions and templates by name and runs them.

    Definitions and templates live in two independent, separately typed
    stores. Registration parses first and fails if the name is already
    live; the check and the write are not atomic (see MemoryCache.register).
    """

    def __init__(self, transport: Transport | None = None) -> None:
        """Initialize the registry.

        Args:
            transport: Transport used for every run. None selects the shared
                default transports per target mode.
        """
        self._transport = transport
        self._definitions: MemoryCache[Definition] = MemoryCache(DEFINITIONS_STORE)
        self._templates: MemoryCache[Template] = MemoryCache(TEMPLATES_STORE)
        self._log = logger.bind(component="registry")

    @property
    def definitions(self) -> MemoryCache[Definition]:
        """Get the definition store."""
        return self._definitions

    @property
    def templates(self) -> MemoryCache[Template]:
        """Get the template store."""
        return self._templates

    def register_definition(self, definition: Definition) -> Definition:
        """Parse and register a definition under its name.

        Args:
            definition: Definition to register.

        Returns:
            The stored (parsed) definition.

        Raises:
            DefinitionValidationError: If the definition is invalid.
            AlreadyExistsError: If the name is already registered.
        """
        parsed = definition.parse()
        self._definitions.register(parsed.name, parsed)
        self._log.info(
            "definition_registered",
            name=parsed.name,
            method=parsed.method,
            fallback=parsed.uses_fallback,
        )
        return parsed

    def register_template(self, template: Template) -> Template:
        """Parse and register a template under its name.

        Args:
            template: Template to register.

        Returns:
            The stored (parsed) template.

        Raises:
            DefinitionValidationError: If the template is invalid.
            AlreadyExistsError: If the name is already registered.
        """
        parsed = template.parse()
        self._templates.register(parsed.name, parsed)
        self._log.info(
            "template_registered",
            name=parsed.name,
            variables=[spec.name for spec in parsed.variables],
        )
        return parsed

    def get_definition(self, name: str) -> Definition:
        """Look up a registered definition.

        Raises:
            NotFoundError: If no live definition has this name.
        """
        return self._definitions.get(name)

    def get_template(self, name: str) -> Template:
        """Look up a registered template.

        Raises:
            NotFoundError: If no live template has this name.
        """
        return self._templates.get(name)

    def run_by_name(
        self,
        name: str,
        context: ExecutionContext | None = None,
    ) -> TransportResponse:
        """Look up a definition and execute it.

        Args:
            name: Registered definition name.
            context: Optional deadline/cancellation scope.

        Returns:
            The successful response.

        Raises:
            NotFoundError: If the definition is not registered.
            UnsuccessfulStatusError: If the response is not a success.
            AllEndpointsFailedError: If no fallback endpoint responded.
            TransportError: If the request failed.
        """
        definition = self.get_definition(name)
        return execute(definition, transport=self._transport, context=context)

    def run_template_by_name(
        self,
        name: str,
        variables: Mapping[str, str] | None = None,
        context: ExecutionContext | None = None,
    ) -> TransportResponse:
        """Render a registered template and execute the result.

        The rendered definition is never stored.

        Args:
            name: Registered template name.
            variables: Variable values for rendering.
            context: Optional deadline/cancellation scope.

        Returns:
            The successful response.

        Raises:
            NotFoundError: If the template is not registered.
            DefinitionValidationError: If rendering fails.
            ExecutionError: See run_by_name.
            TransportError: See run_by_name.
        """
        template = self.get_template(name)
        definition = template.render(variables)
        return execute(definition, transport=self._transport, context=context)

    def register_definition_data(self, data_type: str, data: bytes | str) -> int:
        """Register every definition of a YAML/JSON payload, in order.

        Stops at the first error; definitions registered before it stay
        registered.

        Args:
            data_type: "yaml", "yml" or "json".
            data: Payload holding a list of definitions.

        Returns:
            Number of definitions registered.
        """
        definitions = load_definitions(data_type, data)
        for definition in definitions:
            self.register_definition(definition)
        return len(definitions)

    def register_template_data(self, data_type: str, data: bytes | str) -> int:
        """Register every template of a YAML/JSON payload, in order.

        Stops at the first error; templates registered before it stay
        registered.

        Args:
            data_type: "yaml", "yml" or "json".
            data: Payload holding a list of templates.

        Returns:
            Number of templates registered.
        """
        templates = load_templates(data_type, data)
        for template in templates:
            self.register_template(template)
        return len(templates)


_default_registry: ApiRegistry | None = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> ApiRegistry:
    """Get the process-wide registry, creating it on first use."""
    global _default_registry  # noqa: PLW0603
    with _default_registry_lock:
        if _default_registry is None:
            _default_registry = ApiRegistry()
        return _default_registry


def reset_default_registry() -> None:
    """Drop the process-wide registry (primarily for testing)."""
    global _default_registry  # noqa: PLW0603
    with _default_registry_lock:
        _default_registry = None
