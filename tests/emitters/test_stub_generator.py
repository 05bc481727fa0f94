"""Tests for callergen.emitters.stubs."""

from __future__ import annotations

from callergen.emitters.stubs import CallerUtilsGenerator, rust_type, wit_namespace
from callergen.models import (
    Exposure,
    SignatureRecord,
    WitInterface,
    WitList,
    WitOption,
    WitPrimitive,
    WitRef,
)

STRING = WitPrimitive("string")


def _interface(*signatures: SignatureRecord) -> WitInterface:
    return WitInterface(name="files", world="files-dot-os-v0", declarations=(), signatures=signatures)


def _rename(exposure: Exposure) -> SignatureRecord:
    return SignatureRecord(
        function="rename",
        exposure=exposure,
        params=(("old", STRING), ("new", STRING)),
        returning=WitPrimitive("bool"),
    )


def test_rust_type_follows_bindgen_naming() -> None:
    assert rust_type(WitPrimitive("s32")) == "i32"
    assert rust_type(WitPrimitive("unit")) == "()"
    assert rust_type(WitList(WitOption(STRING))) == "Vec<Option<String>>"
    assert rust_type(WitRef("result-unit-string")) == "ResultUnitString"


def test_exposures_share_one_request_builder() -> None:
    module = CallerUtilsGenerator().build(_interface(_rename(Exposure.REMOTE), _rename(Exposure.LOCAL)))

    assert module.module == "files"
    assert [stub.name for stub in module.stubs] == ["rename_remote_rpc", "rename_local_rpc"]
    assert len(module.builders) == 1
    assert module.builders[0].tag == "Rename"
    assert module.stubs[0].builder is module.stubs[1].builder
    assert module.stubs[0].params == module.stubs[1].params == (("old", "String"), ("new", "String"))


def test_rendered_module_builds_tagged_payloads() -> None:
    generator = CallerUtilsGenerator(timeout=45)
    single = SignatureRecord("get-file-info", Exposure.HTTP, (("path", STRING),), WitRef("file-info"))
    empty = SignatureRecord("list-files", Exposure.LOCAL, (), WitList(WitRef("file-info")))
    text = generator.render_module(
        generator.build(_interface(_rename(Exposure.REMOTE), single, empty))
    )

    assert "use crate::*;\nuse hyperware_process_lib::Address;\nuse serde_json::json;\n" in text
    assert (
        "fn rename_request(old: String, new: String) -> serde_json::Value {\n"
        '    json!({"Rename": (old, new)})\n'
        "}\n"
    ) in text
    assert '    json!({"GetFileInfo": path})\n' in text
    assert '    json!({"ListFiles": {}})\n' in text
    assert (
        "/// Generated stub for `rename` remote RPC call\n"
        "pub async fn rename_remote_rpc(target: &Address, old: String, new: String) -> SendResult<bool> {\n"
        "    let request = rename_request(old, new);\n"
        "    send::<bool>(&request, target, 45).await\n"
        "}\n"
    ) in text
    assert "pub async fn get_file_info_http_rpc(target: &Address, path: String) -> SendResult<FileInfo> {" in text
    assert "    let request = list_files_request();\n" in text


def test_keyword_parameters_are_escaped() -> None:
    record = SignatureRecord("set-kind", Exposure.REMOTE, (("type", STRING),), WitPrimitive("unit"))
    text = CallerUtilsGenerator().render_module(CallerUtilsGenerator().build(_interface(record)))

    assert "fn set_kind_request(r#type: String) -> serde_json::Value {" in text
    assert 'json!({"SetKind": r#type})' in text
    assert "-> SendResult<()> {" in text


def test_render_lib_lists_modules_and_reexports() -> None:
    generator = CallerUtilsGenerator()
    files = generator.build(_interface(_rename(Exposure.REMOTE)))
    client = generator.build(
        WitInterface(name="chat-client", world="files-dot-os-v0", declarations=(), signatures=())
    )

    text = generator.render_lib([files, client], "files-dot-os-v0", "hyperware:process@1.0.0")

    assert '    world: "types-files-dot-os-v0",\n' in text
    assert "pub use hyperware_app_common::send;\npub use hyperware_app_common::SendResult;\n" in text
    assert text.index("pub use crate::hyperware::process::chat_client::*;") < text.index(
        "pub use crate::hyperware::process::files::*;"
    )
    assert "pub mod chat_client;\n" in text
    assert "pub mod files;\n" in text


def test_wit_namespace_strips_version() -> None:
    assert wit_namespace("hyperware:process@1.0.0") == ("hyperware", "process")
    assert wit_namespace("acme:my-pkg") == ("acme", "my_pkg")


def test_manifest_names_the_aggregator() -> None:
    text = CallerUtilsGenerator().render_manifest("caller-utils")

    assert text.startswith('[package]\nname = "caller-utils"\n')
    assert 'crate-type = ["cdylib", "lib"]' in text
