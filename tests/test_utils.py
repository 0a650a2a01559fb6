import logging

from angelscript_binding_generator.utils import TemplateRenderer, configure_logging, write_text


def test_write_text_creates_parents_and_normalizes_newlines(tmp_path):
    path = tmp_path / "out" / "Bindings.cpp"
    assert write_text(path, "a\r\nb\rc\n")
    assert path.read_bytes() == b"a\nb\nc\n"


def test_write_text_skips_unchanged_content(tmp_path):
    path = tmp_path / "Bindings.cpp"
    assert write_text(path, "int x;\n")
    mtime = path.stat().st_mtime_ns
    assert not write_text(path, "int x;\r\n")
    assert path.stat().st_mtime_ns == mtime
    assert write_text(path, "int y;\n")
    assert path.read_text(encoding="utf-8") == "int y;\n"


def test_write_text_dry_run(tmp_path):
    path = tmp_path / "Bindings.cpp"
    assert not write_text(path, "int x;\n", dry_run=True)
    assert not path.exists()


def test_cpp_comment_filter():
    env = TemplateRenderer().env
    text = env.from_string("{{ s | cpp_comment }}").render(s="void F(Node&&)\n    can not bind")
    assert text == "// void F(Node&&)\n//     can not bind"


def test_user_templates_take_precedence(tmp_path):
    (tmp_path / "angelscript_bindings.cpp.j2").write_text("custom {{ namespace }}", encoding="utf-8")
    assert TemplateRenderer(tmp_path).render("angelscript_bindings.cpp.j2", {"namespace": "Urho3D"}) == "custom Urho3D"


def test_configure_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "gen.log"
    configure_logging("DEBUG", to_file=log_file, fmt="%(name)s %(message)s")
    try:
        logging.getLogger("angelscript_binding_generator.test").debug("hello")
        for h in logging.getLogger().handlers:
            h.flush()
        assert "angelscript_binding_generator.test hello" in log_file.read_text(encoding="utf-8")
    finally:
        for h in list(logging.getLogger().handlers):
            h.close()
            logging.getLogger().removeHandler(h)
