import importlib
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch
from click.testing import CliRunner

from fakes import FakeRunner
from buildconf import config
from buildconf.main import cli
from buildconf.probes import Outcome

PROJECT = """
[project]
name = "Demo"
version = "1.0"

[artifacts]
directory = "generated"

[[probe]]
name = "flag_a"
kind = "compiler_flag"
query = "-mflag-a"

[[probe]]
name = "lib_b"
kind = "library"
query = "b"

[[option]]
name = "opt1"
probe = "flag_a"

[[option]]
name = "opt2"
probe = "lib_b"

[[path]]
name = "APP_DATADIR"
parent = "DATADIR"
suffix = "/demo"
"""

# The package re-exports each command under its module name.
probe_module = importlib.import_module("buildconf.commands.probe")
doctor_module = importlib.import_module("buildconf.commands.doctor")
log_module = importlib.import_module("buildconf.commands.log")

HOST_ARGS = ["--os", "Linux", "--arch", "x86_64", "--compiler", "GNU"]


class TestMain(unittest.TestCase):

    def setUp(self):
        self.runner = CliRunner()
        self.test_dir = tempfile.mkdtemp()
        self.write_project(PROJECT)
        self.fake = FakeRunner({"-mflag-a": False, "b": True})
        patcher = patch('buildconf.engine.make_runner', return_value=self.fake)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def write_project(self, content):
        with open(os.path.join(self.test_dir, config.CONFIG_FILE), "w") as f:
            f.write(content)

    def invoke(self, *args, env=None):
        return self.runner.invoke(cli, ["--path", self.test_dir] + list(args), env=env)

    def read(self, *parts):
        with open(os.path.join(self.test_dir, *parts)) as f:
            return f.read()

    def test_resolve_writes_artifacts(self):
        result = self.invoke("resolve", *HOST_ARGS)

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(self.read("generated", "flags.txt"), "opt1=false\nopt2=true\n")
        header = self.read("generated", "config.h")
        self.assertIn("#define opt2 1", header)
        self.assertNotIn("opt1", header)
        self.assertIn('#define APP_DATADIR "/usr/local/share/demo"', header)

    def test_resolve_out_option(self):
        result = self.invoke("resolve", *HOST_ARGS, "--out", "elsewhere")

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue(os.path.exists(os.path.join(self.test_dir, "elsewhere", "buildflags.h")))

    def test_resolve_definitions_override(self):
        result = self.invoke("resolve", *HOST_ARGS, "-D", "opt1=ON", "-D", "PREFIX=/opt/demo")

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(self.read("generated", "flags.txt"), "opt1=true\nopt2=true\n")
        self.assertIn('"/opt/demo/share/demo"', self.read("generated", "config.h"))

    def test_environment_override_loses_to_definition(self):
        env = {"BUILDCONF_opt2": "OFF", "BUILDCONF_opt1": "OFF"}
        result = self.invoke("resolve", *HOST_ARGS, "-D", "opt1=ON", env=env)

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(self.read("generated", "flags.txt"), "opt1=true\nopt2=false\n")

    def test_fatal_error_exits_nonzero_without_artifacts(self):
        self.write_project(PROJECT.replace('name = "opt2"\nprobe = "lib_b"',
                                           'name = "opt2"\nprobe = "lib_b"\nmandatory = true'))
        self.fake.outcomes["b"] = False

        result = self.invoke("resolve", *HOST_ARGS)

        self.assertEqual(result.exit_code, 1)
        self.assertFalse(os.path.exists(os.path.join(self.test_dir, "generated")))

    def test_invalid_declaration_exits_nonzero(self):
        self.write_project(PROJECT + '\n[[option]]\nname = "opt1"\n')

        result = self.invoke("resolve", *HOST_ARGS)

        self.assertEqual(result.exit_code, 1)
        self.assertIn("opt1", result.output)

    def test_missing_declaration(self):
        os.remove(os.path.join(self.test_dir, config.CONFIG_FILE))

        result = self.invoke("resolve", *HOST_ARGS)

        self.assertEqual(result.exit_code, 1)
        self.assertIn("No buildconf.toml found", result.output)

    def test_bad_definition(self):
        result = self.invoke("resolve", *HOST_ARGS, "-D", "opt1")

        self.assertEqual(result.exit_code, 2)

    def test_dry_run_writes_nothing(self):
        result = self.invoke("resolve", *HOST_ARGS, "--dry-run")

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("==> flags.txt <==", result.output)
        self.assertIn("opt1=false", result.output)
        self.assertFalse(os.path.exists(os.path.join(self.test_dir, "generated")))

    def test_resolve_json(self):
        result = self.invoke("resolve", *HOST_ARGS, "--dry-run", "--json")

        self.assertIn('"opt2": true', result.output)

    def test_show(self):
        result = self.invoke("show", *HOST_ARGS, "--flags")

        self.assertEqual(result.exit_code, 0, result.output)
        lines = result.output.splitlines()
        self.assertIn("opt1=OFF", lines)
        self.assertIn("opt2=ON", lines)
        self.assertIn("PREFIX=/usr/local", lines)
        self.assertIn("C_FLAGS=", lines)

    @patch.object(probe_module, "ProbeRunner")
    def test_probe_command(self, mock_runner_class):
        mock_runner_class.return_value.run.return_value = Outcome(True, "abc")

        result = self.runner.invoke(cli, ["probe", "external_command", "git rev-parse HEAD"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("external_command git rev-parse HEAD: supported (abc)", result.output)

    def test_probe_command_rejects_unknown_kind(self):
        result = self.runner.invoke(cli, ["probe", "pkgconfig", "gtk+-3.0"])

        self.assertEqual(result.exit_code, 2)


class TestDoctor(unittest.TestCase):

    def test_symbolic_umask(self):
        self.assertEqual(doctor_module.symbolic_umask(0o022), "u=rwx,g=rx,o=rx")
        self.assertEqual(doctor_module.symbolic_umask(0o077), "u=rwx,g=,o=")

    def test_umask_ok(self):
        self.assertTrue(doctor_module.umask_ok("u=rwx,g=rx,o=rx"))
        self.assertFalse(doctor_module.umask_ok("u=rwx,g=,o="))
        self.assertFalse(doctor_module.umask_ok("u=rw,g=r,o=r"))

    @patch.object(doctor_module, "current_umask", return_value=0o077)
    @patch.object(doctor_module, "logger")
    def test_doctor_warns_about_umask(self, mock_logger, mock_umask):
        test_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, test_dir)

        result = CliRunner().invoke(cli, ["--path", test_dir, "doctor"])

        self.assertEqual(result.exit_code, 0)
        warnings = [c.args[0] for c in mock_logger.warning.call_args_list]
        self.assertTrue(any("umask is set to u=rwx,g=,o=" in w for w in warnings))
        mock_logger.error.assert_called_once()

class TestLog(unittest.TestCase):

    def setUp(self):
        self.log_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.log_dir)
        patcher = patch.object(log_module, "LOG_DIR", self.log_dir)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_list_without_logs(self):
        result = CliRunner().invoke(cli, ["log", "--list"])

        self.assertEqual(result.exit_code, 0)
        self.assertIn("No log files found.", result.output)

    def test_display_named_file(self):
        with open(os.path.join(self.log_dir, "buildconf_1.log"), "w") as f:
            f.write("[INFO] Resolving options...\n[ERROR] opt1: failed\n")

        result = CliRunner().invoke(cli, ["log", "--filename", "buildconf_1.log"])

        self.assertEqual(result.exit_code, 0)
        self.assertIn("Resolving options...", result.output)
        self.assertIn("opt1: failed", result.output)

    def test_list_files(self):
        open(os.path.join(self.log_dir, "buildconf_2.log"), "w").close()

        result = CliRunner().invoke(cli, ["log", "--list"])

        self.assertIn("buildconf_2.log", result.output)


if __name__ == "__main__":
    unittest.main()
