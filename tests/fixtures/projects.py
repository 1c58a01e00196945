"""Reusable Go project fixtures for testing."""

from pathlib import Path

import pytest

HELLO_GO = """package main

import "C"

import "fmt"

//export hello
func hello() {
\tfmt.Println("Hello from Go!")
}

func main() {}
"""

GO_MOD = """module example.com/hello

go 1.22
"""


@pytest.fixture
def go_project(tmp_path) -> Path:
    """
    Create a minimal cgo project.

    Layout:
        project/go.mod
        project/hello.go
        project/lib/util.go

    Returns:
        Path to the project directory
    """
    project = tmp_path / "project"
    project.mkdir()
    (project / "go.mod").write_text(GO_MOD)
    (project / "hello.go").write_text(HELLO_GO)

    lib = project / "lib"
    lib.mkdir()
    (lib / "util.go").write_text("package lib\n\nfunc Answer() int { return 42 }\n")
    return project
