# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Registry for transfer importer classes.

Importers declare dependencies via the ``dependencies`` attribute. The
registry returns them in topological order, with registration order as
the tie-breaker, so users are always imported before the groups that
reference them, and groups before events and memberships.

Usage:
    @TransferImporterRegistry.register
    class GroupImporter(BaseTransferImporter):
        model_name = "groups"
        dependencies = ["users"]
        ...
"""

from typing import Dict, List, Optional, Type
import logging

from .base import BaseTransferImporter

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Exception raised for registry errors."""
    pass


class CyclicDependencyError(RegistryError):
    """Exception raised when circular dependencies are detected."""
    pass


class TransferImporterRegistry:
    """Registry for manifest collection importers."""

    _importers: Dict[str, Type[BaseTransferImporter]] = {}

    @classmethod
    def register(cls, importer_class: Type[BaseTransferImporter]) -> Type[BaseTransferImporter]:
        """Decorator to register an importer class."""
        if not importer_class.model_name:
            raise ValueError(
                f"Importer class {importer_class.__name__} must define model_name"
            )

        cls._importers[importer_class.model_name] = importer_class
        logger.debug(f"Registered transfer importer: {importer_class.model_name}")
        return importer_class

    @classmethod
    def validate_dependencies(cls) -> List[str]:
        """Return an error message per dependency that is not registered."""
        errors = []
        for name, item in cls._importers.items():
            for dep in item.dependencies:
                if dep not in cls._importers:
                    errors.append(f"{name} depends on unregistered '{dep}'")
        return errors

    @classmethod
    def _topological_sort(cls, model_names: List[str]) -> List[Type[BaseTransferImporter]]:
        visited = set()
        in_progress = set()
        result = []

        def visit(name: str):
            if name in in_progress:
                raise CyclicDependencyError(
                    f"Circular dependency detected involving {name}"
                )
            if name in visited:
                return

            in_progress.add(name)
            for dep in cls._importers[name].dependencies:
                if dep in model_names:
                    visit(dep)
            in_progress.remove(name)
            visited.add(name)
            result.append(cls._importers[name])

        for name in model_names:
            visit(name)

        return result

    @classmethod
    def get_ordered_importers(
        cls, include: Optional[List[str]] = None
    ) -> List[Type[BaseTransferImporter]]:
        """Return importers in dependency order."""
        errors = cls.validate_dependencies()
        if errors:
            raise RegistryError("Dependency validation failed:\n" + "\n".join(errors))

        if include:
            for name in include:
                if name not in cls._importers:
                    raise KeyError(f"Unknown transfer importer: {name}")
            model_names = [name for name in cls._importers if name in include]
        else:
            model_names = list(cls._importers)

        return cls._topological_sort(model_names)

    @classmethod
    def get_importer(cls, model_name: str) -> Type[BaseTransferImporter]:
        if model_name not in cls._importers:
            raise KeyError(f"No transfer importer registered for: {model_name}")
        return cls._importers[model_name]

    @classmethod
    def get_all_model_names(cls) -> List[str]:
        return list(cls._importers.keys())

    @classmethod
    def clear(cls):
        """Clear all registered importers (for testing)."""
        cls._importers = {}
