"""Tests for generation task construction and coalescing dispatch."""

from __future__ import annotations

import tempfile
import threading
import unittest
from pathlib import Path

from mockwatch.control_file import NamedInterface, SourceFileRef
from mockwatch.errors import GenerationError
from mockwatch.generator import InterfaceSpec, OutputOverrides
from mockwatch.packages import ResolvedPackage
from mockwatch.runtime.dispatch import (
    GenerationDispatcher,
    GenerationTask,
    build_task,
    default_output_name,
    output_path_for,
)

HERE = Path("/src/pegomocktest")
HERE_PACKAGE = ResolvedPackage(directory=HERE, package_name="pegomocktest")


def _task(name: str = "MyDisplay", line_number: int = 1) -> GenerationTask:
    directive = NamedInterface(package_ref=None, interface_name=name, line_number=line_number)
    return build_task(HERE, directive, HERE_PACKAGE, "pegomocktest")


class BuildTaskTests(unittest.TestCase):
    def test_default_output_names(self) -> None:
        self.assertEqual(
            default_output_name(NamedInterface(package_ref=None, interface_name="MyDisplay")),
            "mock_mydisplay_test.go",
        )
        self.assertEqual(
            default_output_name(SourceFileRef(package_ref=None, file_path="sub/MyDisplay.go")),
            "mock_mydisplay_test.go",
        )

    def test_defaults_use_directory_package_with_test_suffix(self) -> None:
        task = _task()

        self.assertEqual(task.output_path, HERE / "mock_mydisplay_test.go")
        self.assertEqual(task.package_name, "pegomocktest_test")
        self.assertEqual(task.key, (HERE, "MyDisplay"))
        self.assertEqual(task.interface_spec(), InterfaceSpec(source=HERE_PACKAGE, interface_name="MyDisplay"))

    def test_overrides_win(self) -> None:
        directive = NamedInterface(
            package_ref=None,
            interface_name="MyDisplay",
            output_path="foo.go",
            package_name="the_overriden_test_package",
        )

        task = build_task(HERE, directive, HERE_PACKAGE, "pegomocktest")

        self.assertEqual(
            task.overrides(),
            OutputOverrides(output_path=HERE / "foo.go", package_name="the_overriden_test_package"),
        )

    def test_cross_package_output_stays_in_declaring_directory(self) -> None:
        other = ResolvedPackage(
            directory=Path("/src/pegomocktest/subpackage"),
            package_name="subpackage",
            import_path="pegomocktest/subpackage",
        )
        directive = NamedInterface(package_ref="pegomocktest/subpackage", interface_name="SubDisplay")

        task = build_task(HERE, directive, other, "pegomocktest")

        self.assertEqual(task.output_path, HERE / "mock_subdisplay_test.go")
        self.assertEqual(task.package_name, "pegomocktest_test")
        self.assertEqual(task.interface_spec().source, other)

    def test_output_override_paths_are_normalized(self) -> None:
        directive = NamedInterface(package_ref=None, interface_name="MyDisplay", output_path="../pegomocktest/foo.go")

        self.assertEqual(output_path_for(HERE, directive), HERE / "foo.go")

    def test_source_file_is_relative_to_source_package(self) -> None:
        directive = SourceFileRef(package_ref=None, file_path="mydisplay.go")

        spec = build_task(HERE, directive, HERE_PACKAGE, "pegomocktest").interface_spec()

        self.assertEqual(spec.source_file, HERE / "mydisplay.go")
        self.assertIsNone(spec.interface_name)


class BlockingGenerator:
    """Generator whose first call blocks until released."""

    def __init__(self) -> None:
        self.calls: list[Path] = []
        self.entered = threading.Event()
        self.release = threading.Event()

    def generate(self, package_directory: Path, interface: InterfaceSpec, overrides: OutputOverrides) -> Path:
        self.calls.append(overrides.output_path)
        if len(self.calls) == 1:
            self.entered.set()
            self.release.wait(5)
        return overrides.output_path


class RecordingGenerator:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.seen: list[str | None] = []

    def generate(self, package_directory: Path, interface: InterfaceSpec, overrides: OutputOverrides) -> Path:
        self.seen.append(interface.interface_name)
        if self.error is not None:
            raise self.error
        return overrides.output_path


class DispatcherTests(unittest.TestCase):
    def test_successful_dispatch_returns_output(self) -> None:
        generator = RecordingGenerator()
        result = GenerationDispatcher(generator).dispatch(_task())

        self.assertTrue(result.ok)
        self.assertFalse(result.coalesced)
        self.assertEqual(result.output_path, HERE / "mock_mydisplay_test.go")
        self.assertEqual(generator.seen, ["MyDisplay"])

    def test_generation_error_is_returned_not_raised(self) -> None:
        error = GenerationError("MyDisplay", "boom")
        result = GenerationDispatcher(RecordingGenerator(error)).dispatch(_task())

        self.assertIs(result.error, error)
        self.assertIsNone(result.output_path)

    def test_unexpected_exception_becomes_generation_error(self) -> None:
        result = GenerationDispatcher(RecordingGenerator(RuntimeError("kaput"))).dispatch(_task())

        self.assertIsInstance(result.error, GenerationError)
        self.assertIn("kaput", str(result.error))

    def test_requests_during_flight_collapse_into_one_rerun(self) -> None:
        generator = BlockingGenerator()
        dispatcher = GenerationDispatcher(generator)
        first, second, third = _task(line_number=1), _task(line_number=2), _task(line_number=3)
        outcome: dict[str, object] = {}

        thread = threading.Thread(target=lambda: outcome.setdefault("result", dispatcher.dispatch(first)))
        thread.start()
        self.assertTrue(generator.entered.wait(5))

        self.assertTrue(dispatcher.dispatch(second).coalesced)
        self.assertTrue(dispatcher.dispatch(third).coalesced)
        self.assertEqual(dispatcher.in_flight(), {first.key})

        generator.release.set()
        thread.join(5)

        self.assertEqual(len(generator.calls), 2)
        self.assertEqual(outcome["result"].task, third)
        self.assertEqual(dispatcher.in_flight(), set())

    def test_source_file_without_interfaces_is_not_generated(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            package_dir = Path(tmp)
            (package_dir / "types.go").write_text("package p\n\ntype Impl struct{}\n", encoding="utf-8")
            package = ResolvedPackage(directory=package_dir, package_name="p")
            generator = RecordingGenerator()
            dispatcher = GenerationDispatcher(generator)

            empty = dispatcher.dispatch(
                build_task(package_dir, SourceFileRef(package_ref=None, file_path="types.go"), package, "p")
            )
            missing = dispatcher.dispatch(
                build_task(package_dir, SourceFileRef(package_ref=None, file_path="gone.go"), package, "p")
            )

        self.assertIn("declares no interfaces", str(empty.error))
        self.assertIn("cannot read", str(missing.error))
        self.assertEqual(generator.seen, [])

    def test_distinct_keys_do_not_coalesce(self) -> None:
        generator = RecordingGenerator()
        dispatcher = GenerationDispatcher(generator)

        dispatcher.dispatch(_task("MyDisplay"))
        dispatcher.dispatch(_task("Other"))

        self.assertEqual(generator.seen, ["MyDisplay", "Other"])


if __name__ == "__main__":
    unittest.main()
