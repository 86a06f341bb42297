"""
Integration tests for building a workspace with the host toolchain.

These tests invoke a real compiler and are skipped unless one is installed.
Run with --full.
"""

import subprocess
from pathlib import Path

import pytest

from geno.compilers.compilation_executor import FailureKind
from geno.compilers.factory import create_compiler
from geno.components.workspace import Workspace
from geno.config.configuration import Configuration, ProjectKind


@pytest.fixture
def compiler(tmp_path):
    """Host compiler, skipping when it is not installed."""
    compiler = create_compiler(tmp_path / "build")
    check = compiler.compile(tmp_path / "check.c", Configuration())
    if check.failure == FailureKind.TOOLCHAIN_NOT_FOUND:
        pytest.skip(f"{compiler.name} toolchain not installed")
    return compiler


@pytest.mark.integration
class TestNativeWorkspaceBuild:
    """Integration tests for a library plus application workspace"""

    @pytest.fixture
    def workspace(self, tmp_path, compiler):
        engine_dir = tmp_path / "engine"
        game_dir = tmp_path / "game"
        engine_dir.mkdir()
        game_dir.mkdir()

        (engine_dir / "engine.h").write_text("int engine_answer(void);\n")
        (engine_dir / "engine.c").write_text("int engine_answer(void) { return ANSWER; }\n")
        (game_dir / "main.cpp").write_text(
            '#include <cstdio>\n'
            'extern "C" {\n'
            '#include "engine.h"\n'
            '}\n'
            'int main() { std::printf("%d\\n", engine_answer()); return 0; }\n'
        )

        workspace = Workspace(tmp_path, "Demo", compiler_factory=lambda build_dir: compiler)
        workspace.default_configuration = Configuration(defines=["ANSWER=42"])

        engine = workspace.new_project(engine_dir, "Engine")
        engine.kind = ProjectKind.STATIC_LIBRARY
        engine.add_file("engine.c")

        game = workspace.new_project(game_dir, "Game")
        game.add_file("main.cpp")
        game.add_file(engine_dir / "engine.c")
        game.add_include(engine_dir)
        return workspace

    def test_build_and_run(self, workspace):
        """
        Test the library is archived and the application prints the value
        defined for the whole workspace.
        """
        assert workspace.build()
        engine = workspace.compiler.linker_output_path(Configuration(), "Engine", ProjectKind.STATIC_LIBRARY)
        assert engine.exists()

        outputs = []
        workspace.build_finished.subscribe(lambda event: outputs.append(event.output))
        workspace.reset_build_queue()
        assert workspace.build()

        executable = Path(outputs[0])
        assert executable.exists()

        result = subprocess.run([str(executable)], capture_output=True, text=True, timeout=30)
        assert result.returncode == 0
        assert result.stdout.strip() == "42"
