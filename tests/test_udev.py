from unittest.mock import patch

from x52mfd import udev


def test_rule_content_targets_x52_pro():
    assert 'ATTR{idVendor}=="06a3"' in udev.RULE_CONTENT
    assert 'ATTR{idProduct}=="0762"' in udev.RULE_CONTENT
    assert udev.rule_matches(udev.RULE_CONTENT)


def test_rule_matches_is_case_insensitive():
    assert udev.rule_matches('ATTR{idVendor}=="06A3", ATTR{idProduct}=="0762"')


def test_has_rule_scans_directories(tmp_path):
    empty = tmp_path / "empty"
    rules = tmp_path / "rules.d"
    rules.mkdir()
    (rules / "10-other.rules").write_text('ATTR{idVendor}=="0738"\n', encoding="utf-8")
    assert not udev.has_x52_udev_rule([empty, rules])

    (rules / "99-x52pro.rules").write_text(udev.RULE_CONTENT, encoding="utf-8")
    assert udev.has_x52_udev_rule([empty, rules])


def test_install_skipped_when_not_managed():
    with patch("x52mfd.udev.should_manage_udev", return_value=False):
        success, message = udev.install_x52_udev_rule()
    assert success is False
    assert "not needed" in message


def test_install_without_pkexec():
    with patch("x52mfd.udev.should_manage_udev", return_value=True), \
         patch("x52mfd.udev.has_x52_udev_rule", return_value=False), \
         patch("x52mfd.udev.shutil.which", return_value=None):
        success, message = udev.install_x52_udev_rule()
    assert success is False
    assert str(udev.RULE_TARGET_PATH) in message
