import pytest

from kdumpkit.options import (
    FlagOption,
    IntOption,
    StringOption,
    Subcommand,
    atoi,
)


class _Echo(Subcommand):
    name = "echo"

    def execute(self):
        self.error_code = len(self.args)


def test_flag_option_sets_value():
    opt = FlagOption("help", "h", "Print help output")
    assert opt.value is False
    assert opt.is_set is False
    opt.set_value(None)
    assert opt.value is True
    assert opt.is_set is True


def test_flag_option_spec():
    opt = FlagOption("debug", "D")
    assert opt.short_spec() == "D"
    assert opt.long_spec() == "debug"
    assert opt.placeholder is None


def test_string_option_sets_value():
    opt = StringOption("logfile", "L", "log", default="/dev/null")
    assert opt.value == "/dev/null"
    opt.set_value("/tmp/log")
    assert opt.value == "/tmp/log"
    assert opt.is_set is True


def test_string_option_spec():
    opt = StringOption("configfile", "F")
    assert opt.short_spec() == "F:"
    assert opt.long_spec() == "configfile="
    assert opt.placeholder == "<STRING>"


def test_int_option_parses():
    opt = IntOption("interval", "i", default=500)
    assert opt.value == 500
    opt.set_value("250")
    assert opt.value == 250
    assert opt.placeholder == "<NUMBER>"
    assert opt.short_spec() == "i:"


@pytest.mark.parametrize(
    "text,expected",
    [("42", 42), ("  -7x", -7), ("abc", 0), ("", 0), ("+3", 3)],
)
def test_atoi_semantics(text, expected):
    assert atoi(text) == expected


def test_int_option_junk_is_zero():
    opt = IntOption("interval", "i", default=500)
    opt.set_value("fast")
    assert opt.value == 0


def test_bad_letter_rejected():
    with pytest.raises(ValueError):
        FlagOption("help", "hh")


def test_subcommand_defaults_and_args():
    cmd = _Echo()
    assert cmd.error_code == 0
    assert cmd.needs_config_file is True
    Subcommand.parse_args(cmd, ["a", "b"])
    assert cmd.args == ["a", "b"]
    cmd.execute()
    assert cmd.error_code == 2