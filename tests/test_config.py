import pytest

from docmerge.config import ConfigError, RenderConfig, load_config


def test_defaults():
    config = RenderConfig()
    assert config.page_format == "a4"
    assert config.orientation == "portrait"
    assert config.batch_limit == 200


def test_invalid_values_rejected():
    with pytest.raises(ConfigError):
        RenderConfig(page_format="a3")
    with pytest.raises(ConfigError):
        RenderConfig(jpeg_quality=0)
    with pytest.raises(ConfigError):
        RenderConfig(batch_limit=0)


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ConfigError, match="colour"):
        RenderConfig.from_mapping({"colour": "red"})


def test_with_overrides_skips_none():
    config = RenderConfig().with_overrides(page_format="letter", orientation=None)
    assert config.page_format == "letter"
    assert config.orientation == "portrait"


def test_load_config(tmp_path):
    path = tmp_path / "render.yaml"
    path.write_text(
        "page_format: letter\n"
        "orientation: landscape\n"
        "max_image_px: [400, 300]\n"
        "font_files:\n"
        "  Inter: fonts/Inter.ttf\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.page_format == "letter"
    assert config.orientation == "landscape"
    assert config.max_image_px == (400, 300)
    assert config.font_files == {"Inter": "fonts/Inter.ttf"}


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.yaml")

    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(bad)

    broken = tmp_path / "broken.yaml"
    broken.write_text("page_format: [a4\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(broken)


def test_empty_config_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == RenderConfig()
