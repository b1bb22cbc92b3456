"""
Frontend backed by the Rumoca Modelica compiler.

Parsing and merging are structural (see ``omflow.frontend.parser``); the
merged program is handed to ``rumoca.compile_source`` which does the actual
flattening and emits a Base Modelica JSON document.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from omflow.config import OmflowConfig
from omflow.errors import InstantiationError, LibraryLoadError, ParseError
from omflow.frontend.base import Frontend
from omflow.frontend.flat import FlatModel, FunctionCache
from omflow.frontend.libraries import LibraryId, resolve_library
from omflow.frontend.parser import ParsedProgram, parse_file
from omflow.frontend.program import LibraryRoot, Program
from omflow.frontend.scalarize import scalarize_document
from omflow.frontend.schema import validate_document
from omflow.frontend.text import render_flat_model

logger = logging.getLogger(__name__)


class RumocaFrontend(Frontend):
    """
    Example:
        >>> frontend = RumocaFrontend()
        >>> program = frontend.to_intermediate(frontend.parse("decay.mo"))
        >>> flat, functions = frontend.instantiate("Decay", program)
        >>> print(frontend.to_text(flat))
    """

    def __init__(self, config: Optional[OmflowConfig] = None) -> None:
        self.config = config if config is not None else OmflowConfig()
        # standard libraries resolved by flatten_with_standard_library, by version
        self._standard_libraries: dict[str, Program] = {}

    def parse(self, path: Union[str, Path]) -> ParsedProgram:
        return parse_file(path)

    def to_intermediate(self, parsed: ParsedProgram) -> Program:
        return Program.from_parsed(parsed)

    def instantiate(
        self, model_name: str, program: Program, scalarize: bool = True
    ) -> tuple[FlatModel, FunctionCache]:
        if not program.defines(model_name):
            defined = ", ".join(program.names) or "nothing"
            raise InstantiationError(model_name, f"not defined in program (defines {defined})")
        for hidden in program.shadowed():
            logger.debug("%s is shadowed by an earlier definition", hidden.name)

        document = self._compile(model_name, program.source_text(), program.library_paths())
        if scalarize:
            document = scalarize_document(document)
        flat = FlatModel(name=model_name, document=document, scalarized=scalarize)
        functions = FunctionCache.from_document(document)
        logger.debug(
            "Instantiated %s: %d variables, %d parameters, %d equations, %d functions",
            model_name,
            len(flat.variables),
            len(flat.parameters),
            len(flat.equations),
            len(functions),
        )
        return flat, functions

    def load_library(self, library_id: str) -> Program:
        root = resolve_library(library_id, self.config.search_paths())
        logger.debug("Resolved library %s to %s", library_id, root)
        if root.is_dir():
            package = LibraryId.parse(library_id).package
            return Program(elements=(LibraryRoot(name=package, path=root),))
        try:
            return Program.from_parsed(parse_file(root))
        except ParseError as exc:
            raise LibraryLoadError(library_id, str(exc)) from exc

    def flatten_with_standard_library(
        self, model_name: str, path: Union[str, Path], version: str
    ) -> tuple[FlatModel, FunctionCache]:
        library = self._standard_libraries.get(version)
        if library is None:
            library = self.load_library(version)
            self._standard_libraries[version] = library
        program = self.to_intermediate(self.parse(path)).prepend(library)
        return self.instantiate(model_name, program, self.config.scalarize)

    def to_text(self, flat_model: FlatModel) -> str:
        return render_flat_model(flat_model)

    def _compile(self, model_name: str, source: str, library_paths: list[str]) -> dict[str, Any]:
        try:
            import rumoca
        except ImportError:
            raise ImportError(
                "rumoca is required to flatten Modelica models. " "Install with: pip install rumoca"
            )

        logger.debug(
            "Compiling %s with rumoca (%d source chars, libraries: %s)",
            model_name,
            len(source),
            ", ".join(library_paths) or "none",
        )
        try:
            result = rumoca.compile_source(
                source,
                model_name,
                library_paths=library_paths or None,
                use_modelica_path=self.config.use_modelica_path,
                threads=self.config.threads,
            )
        except Exception as exc:
            # rumoca reports errors as formatted diagnostics; keep the text as-is
            raise InstantiationError(model_name, str(exc)) from exc

        document = json.loads(result.to_base_modelica_json())
        errors = validate_document(document)
        if errors:
            raise InstantiationError(model_name, "invalid flat model: " + "; ".join(errors))
        return document
