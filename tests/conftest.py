"""Shared test fixtures."""

from __future__ import annotations

import sys
from collections.abc import Callable, Mapping
from pathlib import Path
from textwrap import dedent

import pytest

from ptx_builder.guard import FRONTEND_VARIABLE, RECURSION_MARKER

# Stands in for cargo: mimics its output layout, dep-info file and the
# rustc failure transcript for a call to an undefined function.
FAKE_CARGO_SOURCE = dedent(
    r'''
    import json
    import os
    import sys
    import tomllib
    from pathlib import Path

    args = sys.argv[1:]
    root = Path.cwd()

    log = os.environ.get("FAKE_CARGO_LOG")
    if log:
        with open(log, "a", encoding="utf-8") as handle:
            record = {
                "args": args,
                "cwd": str(root),
                "marker": os.environ.get("PTX_CRATE_BUILDING"),
                "target_dir": os.environ.get("CARGO_TARGET_DIR"),
            }
            handle.write(json.dumps(record) + "\n")

    with open(root / "Cargo.toml", "rb") as handle:
        name = tomllib.load(handle)["package"]["name"]
    target = args[args.index("--target") + 1]
    profile = "release" if "--release" in args else "debug"
    color = "--color=always" in args
    out_dir = Path(os.environ["CARGO_TARGET_DIR"]) / target / profile


    def paint(text, code):
        return f"\x1b[{code}m{text}\x1b[0m" if color else text


    def err(line=""):
        print(line, file=sys.stderr, flush=True)


    print("    Blocking waiting for file lock on build directory", flush=True)
    err(f"   {paint('Compiling', '1;32')} core v0.0.0 (/toolchain/lib/rustlib/src/rust/library/core)")
    err(f"   {paint('Compiling', '1;32')} {name} v0.1.0 ({root})")

    lib = root / "src" / "lib.rs"
    if lib.exists() and "external_fn" in lib.read_text(encoding="utf-8"):
        err(paint("error[E0425]", "1;31") + ": cannot find function `external_fn` in this scope")
        err(" --> src/lib.rs:6:20")
        err("  |")
        err("6 |     *y.offset(0) = external_fn(*x.offset(0)) * a;")
        err("  |                    ^^^^^^^^^^^ not found in this scope")
        err()
        err(paint("error", "1;31") + ": aborting due to previous error")
        err()
        err("For more information about this error, try `rustc --explain E0425`.")
        err(paint("error", "1;31") + f": Could not compile `{name}`.")
        err()
        err("To learn more, run the command again with --verbose.")
        sys.exit(101)

    stem = name.replace("-", "_")
    out_dir.mkdir(parents=True, exist_ok=True)
    assembly = out_dir / f"{stem}.ptx"
    assembly.write_text(
        "//\n// Generated by LLVM NVPTX Back-End\n//\n\n"
        ".version 3.2\n.target sm_30\n.address_size 64\n\n"
        ".visible .entry the_kernel(\n)\n{\n\tret;\n}\n",
        encoding="utf-8",
    )
    sources = sorted(str(path).replace(" ", "\\ ") for path in (root / "src").rglob("*.rs"))
    (out_dir / f"{stem}.d").write_text(
        f"{assembly}: " + " ".join(sources) + "\n",
        encoding="utf-8",
    )
    lock = root / "Cargo.lock"
    if not lock.exists():
        lock.write_text("# This file is automatically @generated by Cargo.\nversion = 3\n", encoding="utf-8")
    err(f"    {paint('Finished', '1;32')} {profile} [optimized] target(s) in 0.42s")
    '''
)

SAMPLE_LIB = """\
#![no_std]

mod mod1;
mod mod2;

#[no_mangle]
pub unsafe extern "ptx-kernel" fn the_kernel(x: *const f64, y: *mut f64, a: f64) {
    *y.offset(0) = mod1::scale(*x.offset(0)) * a;
}
"""

FAULTY_LIB = """\
#![no_std]

#[no_mangle]
pub unsafe extern "ptx-kernel" fn the_kernel(x: *const f64, y: *mut f64, a: f64) {
    // Calls a function that does not exist.
    *y.offset(0) = external_fn(*x.offset(0)) * a;
}
"""

PackageFactory = Callable[..., Path]


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear build markers and keep toolchain output inside ``tmp_path``."""
    monkeypatch.delenv(RECURSION_MARKER, raising=False)
    monkeypatch.delenv(FRONTEND_VARIABLE, raising=False)
    monkeypatch.setenv("TMPDIR", str(tmp_path / "tmp"))


@pytest.fixture
def fake_cargo(tmp_path: Path) -> Path:
    tool = tmp_path / "bin" / "cargo"
    tool.parent.mkdir(parents=True, exist_ok=True)
    tool.write_text(f"#!{sys.executable}\n{FAKE_CARGO_SOURCE}", encoding="utf-8")
    tool.chmod(0o755)
    return tool


@pytest.fixture
def cargo_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Path the fake toolchain appends one JSON record per invocation to."""
    log = tmp_path / "cargo-invocations.jsonl"
    monkeypatch.setenv("FAKE_CARGO_LOG", str(log))
    return log


@pytest.fixture
def make_package(tmp_path: Path) -> PackageFactory:
    def _make(
        name: str = "sample-ptx_crate",
        files: Mapping[str, str] | None = None,
        *,
        lock: bool = True,
    ) -> Path:
        root = tmp_path / "packages" / name
        contents = dict(files) if files is not None else {
            "src/lib.rs": SAMPLE_LIB,
            "src/mod1.rs": "pub fn scale(x: f64) -> f64 { x * 2.0 }\n",
            "src/mod2.rs": "pub const UNUSED: u32 = 0;\n",
        }
        contents.setdefault(
            "Cargo.toml",
            f'[package]\nname = "{name}"\nversion = "0.1.0"\n\n[lib]\ncrate-type = ["cdylib"]\n',
        )
        if lock:
            contents.setdefault("Cargo.lock", "version = 3\n")
        for relative, text in contents.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return root.resolve()

    return _make


@pytest.fixture
def sample_package(make_package: PackageFactory) -> Path:
    return make_package()


@pytest.fixture
def faulty_package(make_package: PackageFactory) -> Path:
    return make_package("faulty-ptx_crate", {"src/lib.rs": FAULTY_LIB})
