"""
Unit tests for the GCC and Clang backends.
"""

import pytest
from pathlib import Path
from unittest.mock import Mock, patch

from geno.compilers.compilation_executor import CompilationExecutor, FailureKind, ProcessOutcome
from geno.compilers.compiler_gcc import CompilerClang, CompilerGCC
from geno.compilers.locators import GNULocator
from geno.config.configuration import Architecture, Configuration, ProjectKind
from geno.errors import ProcessInvocationError


def fake_which(name):
    return f'/usr/bin/{name}'


class TestCompilerGCC:
    """Test suite for CompilerGCC."""

    @pytest.fixture(autouse=True)
    def x64_host(self):
        with patch('geno.config.configuration.host_architecture', return_value=Architecture.X86_64), \
                patch('geno.compilers.platform_utils.host_architecture', return_value=Architecture.X86_64):
            yield

    @pytest.fixture
    def sysroot(self, tmp_path):
        """Create a sysroot with a multiarch library directory."""
        sysroot = tmp_path / 'sysroot'
        (sysroot / 'usr' / 'lib' / 'x86_64-linux-gnu').mkdir(parents=True)
        return sysroot

    @pytest.fixture
    def executor(self):
        executor = Mock(spec=CompilationExecutor)
        executor.execute.return_value = ProcessOutcome(returncode=0, stdout='', stderr='')
        return executor

    @pytest.fixture
    def compiler(self, tmp_path, sysroot, executor):
        """Create CompilerGCC with tools found on a fake PATH."""
        locator = GNULocator(environ={}, which=fake_which, sysroot=sysroot)
        return CompilerGCC(tmp_path / 'build', locator=locator, executor=executor, system='linux')

    def test_compile_c_command(self, compiler, tmp_path):
        """Test the driver command for a C file."""
        source = tmp_path / 'main.c'
        configuration = Configuration(defines=['DEBUG'], include_dirs=[Path('/inc')])

        cmd = compiler.make_compiler_command(configuration, source)

        assert cmd == [
            str(Path('/usr/bin/gcc')),
            '-c',
            '-std=c11',
            '-DDEBUG',
            f"-I{Path('/inc')}",
            '-o',
            str(compiler.compiler_output_path(configuration, source)),
            str(source),
        ]

    def test_compile_cpp_command(self, compiler, tmp_path):
        """Test C++ files use the C++ driver without exceptions."""
        cmd = compiler.make_compiler_command(Configuration(), tmp_path / 'main.cc')

        assert cmd[:4] == [str(Path('/usr/bin/g++')), '-c', '-std=c++23', '-fno-exceptions']

    def test_explicit_architecture_flag(self, compiler, tmp_path):
        """Test -m32/-m64 appear only for an explicit architecture."""
        implicit = compiler.make_compiler_command(Configuration(), tmp_path / 'main.c')
        x86 = compiler.make_compiler_command(Configuration(architecture=Architecture.X86), tmp_path / 'main.c')

        assert '-m32' not in implicit and '-m64' not in implicit
        assert x86.count('-m32') == 1

    def test_object_paths_do_not_collide(self, compiler, tmp_path):
        """Test same-named sources in different directories get distinct objects."""
        first = compiler.compiler_output_path(Configuration(), tmp_path / 'a' / 'util.c')
        second = compiler.compiler_output_path(Configuration(), tmp_path / 'b' / 'util.c')

        assert first != second
        assert first.parent == tmp_path / 'build' / 'x86_64' / 'obj'
        assert first.name.startswith('util-') and first.suffix == '.o'

    def test_link_application_command(self, compiler, sysroot, tmp_path):
        """Test the link command for an application."""
        objects = [tmp_path / 'a.o', tmp_path / 'b.o']
        configuration = Configuration(library_dirs=[Path('/opt/lib')], libraries=['z', 'libfoo.so'])

        cmd = compiler.make_linker_command(configuration, objects, 'Game', ProjectKind.APPLICATION)

        assert cmd == [
            str(Path('/usr/bin/g++')),
            '-o',
            str(tmp_path / 'build' / 'x86_64' / 'Game'),
            str(objects[0]),
            str(objects[1]),
            f"-L{sysroot / 'usr' / 'lib' / 'x86_64-linux-gnu'}",
            f"-L{Path('/opt/lib')}",
            '-l:z.a',
            'libfoo.so',
        ]

    def test_link_static_library(self, compiler, tmp_path):
        """Test static libraries are archived."""
        cmd = compiler.make_linker_command(
            Configuration(), [tmp_path / 'a.o'], 'Engine', ProjectKind.STATIC_LIBRARY
        )

        assert cmd == [
            str(Path('/usr/bin/ar')),
            'rcs',
            str(tmp_path / 'build' / 'x86_64' / 'libEngine.a'),
            str(tmp_path / 'a.o'),
        ]

    def test_link_dynamic_library(self, compiler, tmp_path):
        """Test shared libraries are linked with -shared."""
        cmd = compiler.make_linker_command(Configuration(), [], 'Engine', ProjectKind.DYNAMIC_LIBRARY)

        assert '-shared' in cmd
        assert str(tmp_path / 'build' / 'x86_64' / 'libEngine.so') in cmd

    @pytest.mark.parametrize('system,application,shared', [
        ('linux', 'Game', 'libGame.so'),
        ('darwin', 'Game', 'libGame.dylib'),
        ('windows', 'Game.exe', 'libGame.dll'),
    ])
    def test_output_names_per_system(self, tmp_path, system, application, shared):
        """Test output file names follow the target system."""
        compiler = CompilerGCC(tmp_path, locator=GNULocator(environ={}, which=fake_which), system=system)

        assert compiler.linker_output_path(Configuration(), 'Game', ProjectKind.APPLICATION).name == application
        assert compiler.linker_output_path(Configuration(), 'Game', ProjectKind.DYNAMIC_LIBRARY).name == shared

    def test_missing_compiler(self, tmp_path, executor):
        """Test a missing driver is reported as a result."""
        locator = GNULocator(environ={}, which=lambda name: None)
        compiler = CompilerGCC(tmp_path, locator=locator, executor=executor, system='linux')

        result = compiler.compile(tmp_path / 'main.c', Configuration())

        assert not result.success
        assert result.failure == FailureKind.TOOLCHAIN_NOT_FOUND
        assert 'gcc not found' in result.stderr
        executor.execute.assert_not_called()

    def test_link_runs_executor(self, compiler, executor, tmp_path):
        """Test link() hands the linker command to the executor."""
        result = compiler.link([tmp_path / 'a.o'], 'Game', ProjectKind.APPLICATION, Configuration())

        assert result.success
        assert result.output_file == tmp_path / 'build' / 'x86_64' / 'Game'
        executor.execute.assert_called_once()

    def test_link_failure(self, compiler, executor, tmp_path):
        """Test a failing link reports no output."""
        executor.execute.return_value = ProcessOutcome(
            returncode=1,
            stdout='',
            stderr='undefined reference to `main',
            failure=FailureKind.NONZERO_EXIT,
        )

        result = compiler.link([tmp_path / 'a.o'], 'Game', ProjectKind.APPLICATION, Configuration())

        assert not result.success
        assert result.output_file is None
        assert 'undefined reference' in result.diagnostics
        with pytest.raises(ProcessInvocationError, match='nonzero_exit'):
            result.raise_on_failure()

    def test_raise_on_failure_after_success(self, compiler, tmp_path):
        """Test successful steps do not raise."""
        compiler.compile(tmp_path / 'main.c', Configuration()).raise_on_failure()

    def test_format_command(self, compiler):
        """Test commands render as a POSIX shell line."""
        assert compiler.format_command(['gcc', '-DNAME=a b']) == "gcc '-DNAME=a b'"


class TestCompilerClang:
    """Test suite for CompilerClang."""

    @pytest.fixture
    def compiler(self, tmp_path):
        locator = GNULocator(c_driver='clang', cxx_driver='clang++', archiver='llvm-ar',
                             environ={}, which=fake_which)
        return CompilerClang(tmp_path, locator=locator, system='linux')

    def test_default_locator_uses_llvm_tools(self):
        """Test Clang looks for clang, clang++ and llvm-ar."""
        locator = CompilerClang.default_locator()

        assert locator.defaults == {'cc': 'clang', 'cxx': 'clang++', 'ar': 'llvm-ar'}

    def test_target_flag(self, compiler, tmp_path):
        """Test an explicit architecture becomes --target."""
        cmd = compiler.make_compiler_command(Configuration(architecture=Architecture.X86), tmp_path / 'main.c')

        assert cmd[0] == str(Path('/usr/bin/clang'))
        assert '--target=i686-linux-gnu' in cmd
        assert '-m32' not in cmd
