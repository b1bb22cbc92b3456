"""
Compile-and-simulate orchestration.

A ``Session`` owns the library cache, the model registry and the
diagnostics flags, and sequences calls into its frontend and backend:

    source file -> parse -> (merge library) -> instantiate -> flat model
        -> backend compile -> registry -> integrate -> trajectory

Errors raised by the frontend or backend propagate unchanged. The one
exception is ``resimulate``, which recovers from a registry miss (and, with
``RecoveryPolicy.ANY_FAILURE``, from any failure) by logging guidance and
the list of compiled models.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Union

from omflow.backend.base import Backend
from omflow.cache import LibraryCache, ModelRegistry
from omflow.config import OmflowConfig, RecoveryPolicy, SolverStrategy
from omflow.diagnostics import Diagnostics
from omflow.errors import ModelNotCompiledError
from omflow.frontend.base import Frontend
from omflow.request import (
    FlattenRequest,
    FreshFile,
    NamedLibrary,
    NoLibrary,
    RegistryLookup,
    SimulationRequest,
    StandardLibrary,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
SolverLike = Union[str, SolverStrategy]
Time = Union[int, float]


class Session:
    """
    Orchestration context for one caller.

    Args:
        frontend: Source-to-flat-model collaborator (default: ``RumocaFrontend``)
        backend: Flat-model-to-trajectory collaborator (default: ``CasadiBackend``)
        config: Session settings (default: ``OmflowConfig()``)

    Example:
        >>> session = Session()
        >>> session.translate("Decay", "decay.mo")
        >>> traj = session.simulate("Decay", stop_time=5.0)
        >>> traj = session.resimulate("Decay", stop_time=10.0, solver="cvodes")
    """

    def __init__(
        self,
        frontend: Optional[Frontend] = None,
        backend: Optional[Backend] = None,
        config: Optional[OmflowConfig] = None,
    ) -> None:
        self.config = config if config is not None else OmflowConfig()
        if frontend is None:
            from omflow.frontend.rumoca_frontend import RumocaFrontend

            frontend = RumocaFrontend(self.config)
        if backend is None:
            from omflow.backend.casadi import CasadiBackend

            backend = CasadiBackend(output_points=self.config.output_points)
        self.frontend = frontend
        self.backend = backend
        self.libraries = LibraryCache()
        self.registry = ModelRegistry()
        self.diagnostics = Diagnostics()

    # ------------------------------------------------------------------ libraries

    def load_library(self, library_id: str) -> None:
        """Load a library through the frontend and cache it under ``library_id``."""
        program = self.frontend.load_library(library_id)
        self.libraries.store(library_id, program)
        logger.info("Loaded library %s", library_id)

    def get_library(self, library_id: str) -> Any:
        return self.libraries.get(library_id)

    # ------------------------------------------------------------------ frontend

    def parse_file(self, model_file: PathLike) -> Any:
        return self.frontend.parse(model_file)

    def translate_to_intermediate(self, model_file: PathLike) -> Any:
        """Parse ``model_file`` and return its intermediate program."""
        return self.frontend.to_intermediate(self.frontend.parse(model_file))

    def flatten(
        self,
        request: Union[FlattenRequest, str],
        model_file: Optional[PathLike] = None,
        library: Optional[str] = None,
        scalarize: Optional[bool] = None,
    ) -> tuple[Any, Any]:
        """
        Flatten a model into ``(flat_model, function_cache)``.

        Either pass a ``FlattenRequest``, or a model name plus ``model_file``
        and optionally the identifier of a library loaded with
        ``load_library``, whose declarations are placed ahead of the model's.

        Raises:
            LibraryNotLoadedError: ``library`` is not in the library cache
        """
        if isinstance(request, str):
            if model_file is None:
                raise TypeError("flatten() needs model_file when called with a model name")
            request = FlattenRequest(
                model_name=request,
                model_file=model_file,
                library=NamedLibrary(library) if library is not None else NoLibrary(),
                scalarize=self.config.scalarize if scalarize is None else scalarize,
            )
        elif model_file is not None or library is not None or scalarize is not None:
            raise TypeError("flatten() takes either a FlattenRequest or keyword arguments, not both")
        return self._flatten(request)

    def flatten_with_standard_library(
        self, model_name: str, model_file: PathLike, version: Optional[str] = None
    ) -> tuple[Any, Any]:
        """Flatten against a standard library version the frontend loads on demand."""
        version = version or self.config.standard_library_version
        return self.frontend.flatten_with_standard_library(model_name, model_file, version)

    def translate_model_from_intermediate(
        self, model_name: str, program: Any, scalarize: Optional[bool] = None
    ) -> tuple[Any, Any]:
        """Instantiate ``model_name`` from an already translated intermediate program."""
        scalarize = self.config.scalarize if scalarize is None else scalarize
        return self.frontend.instantiate(model_name, program, scalarize)

    def to_text(self, flat_model: Any) -> str:
        return self.frontend.to_text(flat_model)

    def generate_flat_modelica(
        self,
        model_name: str,
        model_file: PathLike,
        use_standard_library: bool = False,
        standard_library_version: Optional[str] = None,
    ) -> str:
        """Flatten a model and return its flat text."""
        flat, _ = self._flatten(
            self.translation_request(
                model_name, model_file, use_standard_library, standard_library_version
            )
        )
        return self.frontend.to_text(flat)

    def _flatten(self, request: FlattenRequest) -> tuple[Any, Any]:
        library = request.library
        if isinstance(library, StandardLibrary):
            return self.flatten_with_standard_library(
                request.model_name, request.model_file, library.version
            )

        parsed = self.frontend.parse(request.model_file)
        program = self.frontend.to_intermediate(parsed)
        if isinstance(library, NamedLibrary):
            program = program.prepend(self.libraries.get(library.library_id))
        return self.frontend.instantiate(request.model_name, program, request.scalarize)

    def translation_request(
        self,
        model_name: str,
        model_file: PathLike,
        use_standard_library: bool,
        standard_library_version: Optional[str],
    ) -> FlattenRequest:
        """The ``FlattenRequest`` that ``translate`` and ``generate_flat_modelica`` flatten with."""
        if use_standard_library:
            library = StandardLibrary(
                standard_library_version or self.config.standard_library_version
            )
        else:
            library = NoLibrary()
        return FlattenRequest(model_name, model_file, library, self.config.scalarize)

    # ------------------------------------------------------------------ backend

    def translate(
        self,
        model_name: str,
        model_file: PathLike,
        use_standard_library: bool = False,
        standard_library_version: Optional[str] = None,
    ) -> None:
        """
        Flatten and compile a model, registering the artifact under ``model_name``.

        An artifact already registered under the same name is replaced.
        """
        flat, _ = self._flatten(
            self.translation_request(
                model_name, model_file, use_standard_library, standard_library_version
            )
        )
        self.compile_flat_model(model_name, flat)

    def compile_flat_model(self, model_name: str, flat_model: Any) -> None:
        """Compile an already flattened model and register it under ``model_name``."""
        artifact = self.backend.compile(flat_model)
        replaced = self.registry.register(model_name, artifact)
        logger.info("%s %s", "Recompiled" if replaced else "Compiled", model_name)

    def list_compiled_models(self) -> list[str]:
        return self.registry.names()

    def list_available_models(self) -> list[str]:
        """Log and return the names of the currently compiled models."""
        names = self.registry.names()
        self._log_compiled_models(logging.INFO, names)
        return names

    def _log_compiled_models(self, level: int, names: list[str]) -> None:
        logger.log(level, "Currently compiled models: %s", ", ".join(names) if names else "(none)")

    def simulate(
        self,
        request: Union[SimulationRequest, str],
        model_file: Optional[PathLike] = None,
        start_time: Optional[Time] = None,
        stop_time: Optional[Time] = None,
        use_standard_library: bool = False,
        standard_library_version: Optional[str] = None,
        solver: Optional[SolverLike] = None,
    ) -> Any:
        """
        Simulate a model over ``[start_time, stop_time]``.

        With ``model_file`` the model is always translated first. Without it,
        the artifact registered under the model name is simulated. The time
        span defaults to ``[0, 1]``. A ``SimulationRequest`` carries all of
        these itself and cannot be combined with them.

        Raises:
            ModelNotCompiledError: no ``model_file`` and the model is not registered
            TypeError: a ``SimulationRequest`` combined with further arguments
        """
        if isinstance(request, str):
            if model_file is not None:
                source = FreshFile(model_file, use_standard_library, standard_library_version)
            else:
                source = RegistryLookup()
            request = SimulationRequest(
                model_name=request,
                source=source,
                start_time=0.0 if start_time is None else start_time,
                stop_time=1.0 if stop_time is None else stop_time,
                solver=SolverStrategy.coerce(solver) if solver is not None else None,
            )
        elif (
            model_file is not None
            or start_time is not None
            or stop_time is not None
            or use_standard_library
            or standard_library_version is not None
            or solver is not None
        ):
            raise TypeError("simulate() takes either a SimulationRequest or keyword arguments, not both")
        return self._simulate(request)

    def _simulate(self, request: SimulationRequest) -> Any:
        source = request.source
        if isinstance(source, FreshFile):
            self.translate(
                request.model_name,
                source.model_file,
                source.use_standard_library,
                source.standard_library_version,
            )
        artifact = self.registry.lookup(request.model_name)
        solver = request.solver if request.solver is not None else self.config.solver
        return self.backend.integrate(artifact, (request.start_time, request.stop_time), solver)

    def resimulate(
        self,
        model_name: str,
        start_time: Time = 0.0,
        stop_time: Time = 1.0,
        solver: Optional[SolverLike] = None,
    ) -> Optional[Any]:
        """
        Simulate an already compiled model again.

        Returns None, after logging guidance and the compiled model names, if
        the model is not compiled. Other failures propagate unless the session
        uses ``RecoveryPolicy.ANY_FAILURE``.
        """
        try:
            return self.simulate(model_name, start_time=start_time, stop_time=stop_time, solver=solver)
        except ModelNotCompiledError:
            self._report_resimulation_failure(model_name)
            return None
        except Exception:
            if self.config.recovery_policy is not RecoveryPolicy.ANY_FAILURE:
                raise
            logger.debug("Resimulation of %s failed", model_name, exc_info=True)
            self._report_resimulation_failure(model_name)
            return None

    def _report_resimulation_failure(self, model_name: str) -> None:
        logger.error(
            "Failed to resimulate: {%s} make sure that the model is compiled by calling 'translate'",
            model_name,
        )
        self._log_compiled_models(logging.WARNING, self.registry.names())

    # ------------------------------------------------------------------ diagnostics

    def enable_frontend_diagnostics(self) -> None:
        self.diagnostics.enable_frontend()

    def enable_backend_diagnostics(self) -> None:
        self.diagnostics.enable_backend()

    def disable_frontend_diagnostics(self) -> None:
        self.diagnostics.disable_frontend()

    def disable_backend_diagnostics(self) -> None:
        self.diagnostics.disable_backend()
