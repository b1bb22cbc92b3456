"""
IPython magic commands for omflow.

Usage in a Jupyter notebook:
    # Load the extension
    %load_ext omflow

    %%modelica_translate Decay
    model Decay
        Real x(start=1);
    equation
        der(x) = -x;
    end Decay;

    # Decay is now compiled in the default session
    import omflow.api as om
    traj = om.simulate("Decay", stop_time=5.0)

Options:
    %%modelica_translate MODEL [-s] [-v VERSION] [-p]

    -s, --standard-library  Merge the standard library before flattening
    -v, --version VERSION   Standard library version (default: session setting)
    -p, --print             Display the flat Modelica text

For help in Jupyter: %%modelica_translate?
"""

import tempfile
from pathlib import Path

from IPython.core.magic import Magics, magics_class, cell_magic
from IPython.core.magic_arguments import argument, magic_arguments, parse_argstring


@magics_class
class OmflowMagics(Magics):
    """IPython magics for omflow."""

    @magic_arguments()
    @argument("model", type=str, help="Name of the model to translate")
    @argument(
        "-s",
        "--standard-library",
        action="store_true",
        help="Merge the standard library before flattening",
    )
    @argument(
        "-v",
        "--version",
        type=str,
        default=None,
        help="Standard library version, e.g. MSL:4.0.0",
    )
    @argument("-p", "--print", action="store_true", help="Display the flat Modelica text")
    @cell_magic
    def modelica_translate(self, line, cell):
        """
        Translate the Modelica code in the cell into the default session.

        Usage:
            %%modelica_translate MODEL [-s] [-v VERSION] [-p]

        After translation, simulate with:
            import omflow.api as om
            om.simulate("MODEL", stop_time=10.0)
        """
        args = parse_argstring(self.modelica_translate, line)

        from omflow import api

        with tempfile.NamedTemporaryFile(mode="w", suffix=".mo", delete=False) as mo_tmp:
            mo_path = mo_tmp.name
            mo_tmp.write(cell)

        session = api.get_session()
        try:
            request = session.translation_request(
                args.model, mo_path, args.standard_library, args.version
            )
            flat, _ = session.flatten(request)
            session.compile_flat_model(args.model, flat)
            if args.print:
                print(session.to_text(flat))
        finally:
            Path(mo_path).unlink(missing_ok=True)


def load_ipython_extension(ipython):
    """Load the omflow magic extension."""
    ipython.register_magics(OmflowMagics)


def unload_ipython_extension(ipython):
    """Unload the omflow magic extension."""
    pass
