"""
Unit tests for Project.

Tests path handling, the project document and the compile/link pipeline
against a fake toolchain that never spawns processes.
"""

import threading
import pytest
from pathlib import Path
from unittest.mock import Mock

from geno.compilers.compilation_executor import CompilationExecutor, FailureKind, ProcessOutcome
from geno.compilers.compiler import ICompiler, source_language
from geno.components.project import Project, ProjectError
from geno.config.configuration import Architecture, Configuration, ProjectKind


class FakeCompiler(ICompiler):
    """Toolchain whose commands fail for the file or output names in failing."""

    name = 'fake'

    def __init__(self, build_dir, failing=()):
        executor = Mock(spec=CompilationExecutor)
        executor.execute.side_effect = self._run
        super().__init__(build_dir, executor)
        self.failing = set(failing)
        self.configurations = []

    def _run(self, cmd, output_path=None):
        if Path(cmd[-1]).name in self.failing:
            return ProcessOutcome(1, '', f'{cmd[-1]}: error', FailureKind.NONZERO_EXIT)
        return ProcessOutcome(0, '', '')

    def target_directory_name(self, configuration):
        return 'fake'

    def make_compiler_command(self, configuration, file):
        source_language(file)
        self.configurations.append(configuration)
        return ['cc', str(file)]

    def make_linker_command(self, configuration, object_files, output_name, kind):
        return ['ld'] + [str(o) for o in object_files] + [output_name]

    def linker_output_path(self, configuration, output_name, kind):
        return self.build_dir / 'fake' / output_name

    def format_command(self, cmd):
        return ' '.join(cmd)

    @property
    def commands(self):
        return [call[0][0] for call in self.executor.execute.call_args_list]


class TestProjectPaths:
    """Test suite for project path handling."""

    def test_relative_paths_use_location(self, tmp_path):
        """Test relative files are taken from the project location."""
        project = Project(tmp_path / 'game', 'Game')

        file = project.add_file('src/../src/main.cpp')

        assert file == tmp_path / 'game' / 'src' / 'main.cpp'
        assert project.files == [file]

    def test_absolute_paths_are_kept(self, tmp_path):
        """Test absolute paths are only normalized."""
        project = Project(tmp_path, 'Game')

        assert project.add_include(tmp_path / 'a' / '.' / 'include') == tmp_path / 'a' / 'include'

    def test_relative_path_without_location(self):
        """Test relative paths need a location."""
        with pytest.raises(ProjectError, match='without a project location'):
            Project(None, 'Game').add_file('main.cpp')

    def test_document_path(self, tmp_path):
        """Test the document lives at location/name.gprj."""
        assert Project(tmp_path, 'Game').document_path == tmp_path / 'Game.gprj'
        assert Project(None, 'Game').document_path is None


class TestProjectDocument:
    """Test suite for project serialization."""

    def test_document_layout(self, tmp_path):
        """Test the written document uses paths relative to the location."""
        project = Project(tmp_path / 'game', 'Game', ProjectKind.STATIC_LIBRARY)
        project.add_file('src/main.cpp')
        project.add_file(tmp_path / 'shared' / 'util.c')
        project.add_include('include')

        assert project.serialize()

        assert (tmp_path / 'game' / 'Game.gprj').read_text() == (
            'Name: Game\n'
            'Kind: StaticLibrary\n'
            'Files:\n'
            '\tsrc/main.cpp\n'
            '\t../shared/util.c\n'
            'Includes:\n'
            '\tinclude\n'
        )

    def test_no_includes_table_when_empty(self, tmp_path):
        """Test Includes is only written when there are include directories."""
        project = Project(tmp_path, 'Game')
        project.add_file('main.cpp')
        project.serialize()

        assert 'Includes' not in (tmp_path / 'Game.gprj').read_text()

    def test_serialize_then_deserialize(self, tmp_path):
        """Test a project survives its document."""
        project = Project(tmp_path, 'Engine', ProjectKind.DYNAMIC_LIBRARY)
        project.add_file('a.cpp')
        project.add_file('sub/b.cc')
        project.add_include('include')
        assert project.serialize()

        loaded = Project(tmp_path, 'Engine')
        assert loaded.deserialize()

        assert loaded.name == 'Engine'
        assert loaded.kind == ProjectKind.DYNAMIC_LIBRARY
        assert loaded.files == project.files
        assert loaded.includes == project.includes

    def test_deserialize_ignores_unknown_keys(self, tmp_path):
        """Test documents from newer versions still load."""
        (tmp_path / 'Game.gprj').write_text(
            'Name: Game\nKind: Application\nFiles:\n\tmain.c\nWarnings:\n\tAll\n'
        )

        project = Project(tmp_path, 'Game')

        assert project.deserialize()
        assert project.files == [tmp_path / 'main.c']

    def test_deserialize_unknown_kind(self, tmp_path):
        """Test an unrecognized kind fails to load."""
        (tmp_path / 'Game.gprj').write_text('Name: Game\nKind: Firmware\n')

        assert not Project(tmp_path, 'Game').deserialize()

    def test_serialize_then_deserialize_without_files(self, tmp_path):
        """Test an empty Files table round trips to an empty file list."""
        assert Project(tmp_path, 'P').serialize()
        assert 'Files:\n' in (tmp_path / 'P.gprj').read_text()

        loaded = Project(tmp_path, 'P')
        loaded.add_file('stale.c')

        assert loaded.deserialize()
        assert loaded.files == []
        assert loaded.includes == []

    def test_failed_deserialize_keeps_previous_state(self, tmp_path):
        """Test a document that fails halfway does not change the project."""
        (tmp_path / 'Game.gprj').write_text(
            'Name: Other\nFiles:\n\tnew.c\nKind: Firmware\n'
        )
        project = Project(tmp_path, 'Game', ProjectKind.STATIC_LIBRARY)
        project.add_file('old.c')

        assert not project.deserialize()
        assert project.name == 'Game'
        assert project.kind == ProjectKind.STATIC_LIBRARY
        assert project.files == [tmp_path / 'old.c']

    def test_deserialize_invalid_utf8(self, tmp_path):
        """Test undecodable documents fail to load without raising."""
        (tmp_path / 'Game.gprj').write_bytes(b'Name: Game\nFiles:\n\t\xff\xfe.cpp\n')

        assert not Project(tmp_path, 'Game').deserialize()

    def test_deserialize_missing_document(self, tmp_path):
        """Test a missing document fails to load."""
        assert not Project(tmp_path, 'Game').deserialize()

    def test_without_location(self):
        """Test unsaved projects cannot be written or read."""
        project = Project(None, 'Game')

        assert not project.serialize()
        assert not project.deserialize()


class TestProjectBuild:
    """Test suite for Project.build."""

    @pytest.fixture
    def project(self, tmp_path):
        project = Project(tmp_path, 'Game')
        for name in ('a.cpp', 'b.cpp', 'c.cpp'):
            project.add_file(name)
        return project

    def test_empty_project(self, tmp_path):
        """Test a project without files succeeds without the toolchain."""
        compiler = FakeCompiler(tmp_path / 'build')

        result = Project(tmp_path, 'Empty').build(compiler, Configuration())

        assert result.success
        assert result.output is None
        assert result.toolchain_invocations == 0
        compiler.executor.execute.assert_not_called()

    def test_success_links_objects_in_file_order(self, project, tmp_path):
        """Test every file is compiled, then linked once."""
        compiler = FakeCompiler(tmp_path / 'build')

        result = project.build(compiler, Configuration(), max_workers=3)

        assert result.success
        assert result.output == tmp_path / 'build' / 'fake' / 'Game'
        assert result.toolchain_invocations == 4
        object_files = [r.object_file for r in result.compile_results]
        assert [f.name.split('-')[0] for f in object_files] == ['a', 'b', 'c']
        link_command = compiler.commands[-1]
        assert link_command == ['ld'] + [str(f) for f in object_files] + ['Game']

    def test_failed_compile_skips_link(self, project, tmp_path):
        """Test a failing file stops the link but not the other compiles."""
        compiler = FakeCompiler(tmp_path / 'build', failing={'b.cpp'})

        result = project.build(compiler, Configuration())

        assert not result.success
        assert result.output is None
        assert result.link_result is None
        assert [r.success for r in result.compile_results] == [True, False, True]
        assert result.compile_results[1].failure == FailureKind.NONZERO_EXIT
        assert result.toolchain_invocations == 3
        assert all(cmd[0] == 'cc' for cmd in compiler.commands)

    def test_failed_link(self, project, tmp_path):
        """Test a failing link fails the project."""
        compiler = FakeCompiler(tmp_path / 'build', failing={'Game'})

        result = project.build(compiler, Configuration())

        assert not result.success
        assert result.output is None
        assert result.link_result.failure == FailureKind.NONZERO_EXIT

    def test_unsupported_file(self, tmp_path):
        """Test unknown extensions fail without invoking the toolchain for them."""
        project = Project(tmp_path, 'Game')
        project.add_file('main.cpp')
        project.add_file('README.md')
        compiler = FakeCompiler(tmp_path / 'build')

        result = project.build(compiler, Configuration())

        assert not result.success
        assert result.compile_results[1].failure == FailureKind.UNSUPPORTED_SOURCE
        assert result.toolchain_invocations == 1

    def test_cancelled_before_start(self, project, tmp_path):
        """Test a set cancel event stops every compile from starting."""
        compiler = FakeCompiler(tmp_path / 'build')
        cancel = threading.Event()
        cancel.set()

        result = project.build(compiler, Configuration(), cancel_event=cancel)

        assert not result.success
        assert result.cancelled
        assert result.toolchain_invocations == 0
        compiler.executor.execute.assert_not_called()

    def test_configuration_gets_project_settings(self, project, tmp_path):
        """Test compiles see the project's includes and kind on top of the defaults."""
        project.kind = ProjectKind.STATIC_LIBRARY
        project.add_include('include')
        compiler = FakeCompiler(tmp_path / 'build')
        default = Configuration(architecture=Architecture.X86, defines=['GENO'], include_dirs=[Path('/sdk')])

        project.build(compiler, default, max_workers=1)

        configuration = compiler.configurations[0]
        assert configuration.architecture == Architecture.X86
        assert configuration.defines == ['GENO']
        assert configuration.include_dirs == [Path('/sdk'), tmp_path / 'include']
        assert configuration.kind == ProjectKind.STATIC_LIBRARY
        assert default.include_dirs == [Path('/sdk')]
        assert default.kind == ProjectKind.APPLICATION
