import os
import shutil
import tempfile
import unittest
from types import MappingProxyType
from unittest.mock import patch

from buildconf.artifacts import (
    ArtifactLayout, generate, render_buildflags, render_header, render_summary, write_artifacts,
)
from buildconf.record import ConfigurationRecord


def make_record(entries, **kwargs):
    return ConfigurationRecord(project="Demo", version="1.0", entries=MappingProxyType(dict(entries)), **kwargs)


class TestRenderers(unittest.TestCase):

    def setUp(self):
        self.record = make_record(
            [("opt1", False), ("opt2", True), ("WITH_NEWS", True), ("DATADIR", "/usr/share")],
            compile_flags=("-Wall", "-msse2"),
            link_flags=("-Wl,--no-undefined",),
            definitions=("NDEBUG",),
        )

    def test_header_defines_only_enabled_booleans(self):
        header = render_header(self.record)

        self.assertIn("#define opt2 1\n", header)
        self.assertIn("#define WITH_NEWS 1\n", header)
        self.assertNotIn("opt1", header)

    def test_header_quotes_strings_and_has_guard(self):
        header = render_header(self.record, "generated/config.h")

        self.assertIn('#define DATADIR "/usr/share"', header)
        self.assertTrue(header.splitlines()[1] == "#ifndef CONFIG_H")
        self.assertTrue(header.endswith("#endif /* CONFIG_H */\n"))

    def test_string_values_are_escaped(self):
        header = render_header(make_record([("WEIRD", 'C:\\dir "x"')]))

        self.assertIn('#define WEIRD "C:\\\\dir \\"x\\""', header)

    def test_summary_lists_every_boolean(self):
        self.assertEqual(render_summary(self.record), "opt1=false\nopt2=true\nWITH_NEWS=true\n")

    def test_buildflags(self):
        content = render_buildflags(self.record)

        self.assertIn('#define BUILD_CONFIG "WITH_NEWS=ON"', content)
        self.assertIn('#define BUILD_C_FLAGS "-Wall -msse2 -DNDEBUG"', content)
        self.assertIn('#define BUILD_LINKER_FLAGS "-Wl,--no-undefined"', content)

    def test_generate_uses_layout_paths(self):
        layout = ArtifactLayout(header="inc/feat.h", buildflags="inc/flags.h", summary="flags.txt")

        artifacts = generate(self.record, layout)

        self.assertEqual([a.path for a in artifacts], ["inc/feat.h", "inc/flags.h", "flags.txt"])
        self.assertIn("#ifndef FEAT_H", artifacts[0].content)

    def test_generation_is_byte_stable(self):
        copy = make_record(list(self.record.items()), compile_flags=self.record.compile_flags,
                           link_flags=self.record.link_flags, definitions=self.record.definitions)

        self.assertEqual(generate(self.record), generate(copy))


@patch('buildconf.artifacts.logger')
class TestWriteArtifacts(unittest.TestCase):

    def setUp(self):
        self.out_dir = tempfile.mkdtemp()
        self.artifacts = generate(make_record([("opt1", False), ("opt2", True)]),
                                  ArtifactLayout(header="generated/config.h"))

    def tearDown(self):
        shutil.rmtree(self.out_dir)

    def test_writes_all_artifacts(self, mock_logger):
        written = write_artifacts(self.artifacts, self.out_dir)

        self.assertEqual(len(written), 3)
        with open(os.path.join(self.out_dir, "flags.txt")) as f:
            self.assertEqual(f.read(), "opt1=false\nopt2=true\n")
        self.assertTrue(os.path.exists(os.path.join(self.out_dir, "generated", "config.h")))

    def test_failure_leaves_nothing_behind(self, mock_logger):
        real_mkstemp = tempfile.mkstemp
        calls = []

        def flaky_mkstemp(*args, **kwargs):
            calls.append(1)
            if len(calls) == 3:
                raise OSError("disk full")
            return real_mkstemp(*args, **kwargs)

        with patch('buildconf.artifacts.tempfile.mkstemp', side_effect=flaky_mkstemp):
            with self.assertRaises(OSError):
                write_artifacts(self.artifacts, self.out_dir)

        leftovers = [f for _, _, files in os.walk(self.out_dir) for f in files]
        self.assertEqual(leftovers, [])

    def test_directory_in_the_way_writes_nothing(self, mock_logger):
        os.mkdir(os.path.join(self.out_dir, "flags.txt"))

        with self.assertRaises(IsADirectoryError):
            write_artifacts(self.artifacts, self.out_dir)

        leftovers = [f for _, _, files in os.walk(self.out_dir) for f in files]
        self.assertEqual(leftovers, [])
        self.assertTrue(os.path.isdir(os.path.join(self.out_dir, "flags.txt")))

    def test_failed_rename_restores_previous_files(self, mock_logger):
        existing = os.path.join(self.out_dir, "buildflags.h")
        with open(existing, "w") as f:
            f.write("old")
        summary = os.path.join(self.out_dir, "flags.txt")
        real_replace = os.replace

        def flaky_replace(src, dst):
            if dst == summary:
                raise OSError("rename failed")
            return real_replace(src, dst)

        with patch('buildconf.artifacts.os.replace', side_effect=flaky_replace):
            with self.assertRaises(OSError):
                write_artifacts(self.artifacts, self.out_dir)

        leftovers = sorted(f for _, _, files in os.walk(self.out_dir) for f in files)
        self.assertEqual(leftovers, ["buildflags.h"])
        with open(existing) as f:
            self.assertEqual(f.read(), "old")

    def test_rewrite_replaces_previous_files(self, mock_logger):
        write_artifacts(self.artifacts, self.out_dir)
        write_artifacts(self.artifacts, self.out_dir)

        leftovers = sorted(f for _, _, files in os.walk(self.out_dir) for f in files)
        self.assertEqual(leftovers, ["buildflags.h", "config.h", "flags.txt"])

if __name__ == "__main__":
    unittest.main()
