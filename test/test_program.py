"""
Tests for intermediate programs and library merging.
"""

from pathlib import Path

import pytest

from omflow.errors import ParseError
from omflow.frontend.parser import parse_source
from omflow.frontend.program import LibraryRoot, Program

LIBRARY = """
package Lib
  constant Real k = 2;
end Lib;

model Shared "from library"
end Shared;
"""

MODEL = """
model Shared "from model"
end Shared;

model Top
  Shared s;
end Top;
"""


def _program(source):
    return Program.from_parsed(parse_source(source))


def test_prepend_puts_library_first():
    merged = _program(MODEL).prepend(_program(LIBRARY))
    assert merged.names == ["Lib", "Shared", "Shared", "Top"]
    assert len(merged) == 4


def test_prepend_does_not_mutate_operands():
    library = _program(LIBRARY)
    model = _program(MODEL)
    model.prepend(library)
    assert library.names == ["Lib", "Shared"]
    assert model.names == ["Shared", "Top"]


def test_lookup_first_definition_wins():
    merged = _program(MODEL).prepend(_program(LIBRARY))
    assert '"from library"' in merged.lookup("Shared").text
    assert merged.lookup("Lib.k").name == "Lib"
    assert merged.lookup("Missing") is None
    assert merged.defines("Top")


def test_shadowed_and_source_text():
    merged = _program(MODEL).prepend(_program(LIBRARY))
    hidden = merged.shadowed()
    assert len(hidden) == 1
    assert '"from model"' in hidden[0].text

    text = merged.source_text()
    assert '"from library"' in text
    assert '"from model"' not in text
    assert text.index("package Lib") < text.index("model Top")


def test_library_roots_are_passed_as_paths():
    root = LibraryRoot(name="Modelica", path=Path("/opt/lib/Modelica 3.2.3"))
    merged = _program(MODEL).prepend(Program(elements=(root,)))
    assert merged.library_roots == [root]
    assert merged.library_paths() == ["/opt/lib/Modelica 3.2.3"]
    assert [d.name for d in merged.declarations] == ["Shared", "Top"]
    assert merged.defines("Modelica.Blocks.Gain")
    assert "Modelica" not in merged.source_text()


def test_within_package_file_is_rejected():
    with pytest.raises(ParseError, match="within Modelica.Blocks"):
        _program("within Modelica.Blocks;\nblock Gain\nend Gain;\n")


def test_top_level_within_is_accepted():
    assert _program("within;\nmodel Top\nend Top;\n").names == ["Top"]
