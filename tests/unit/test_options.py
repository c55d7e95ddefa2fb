"""Test option encoding."""

from apbatch.domain.analysis import AlignToMinute, AnalysisOption
from apbatch.domain.options import OptionEncoder, OptionKind, OptionValue, encode_options


def test_option_value_constructors():
    """Constructors tag the payload with its kind."""
    assert OptionValue.flag() == OptionValue(OptionKind.BOOLEAN, True)
    assert OptionValue.flag(False).value is False
    assert OptionValue.text(5) == OptionValue(OptionKind.STRING, "5")


def test_option_value_of_raw_values():
    """Raw values are wrapped by type."""
    assert OptionValue.of(True).kind is OptionKind.BOOLEAN
    assert OptionValue.of("x") == OptionValue.text("x")
    assert OptionValue.of(AlignToMinute.TRIM_BOTH) == OptionValue.text("TrimBoth")
    existing = OptionValue.flag()
    assert OptionValue.of(existing) is existing


def test_encode_mixed_options():
    """True flags appear bare, false flags vanish, spaced strings are quoted."""
    tokens = encode_options({
        "flagA": OptionValue.flag(True),
        "flagB": OptionValue.flag(False),
        "name": OptionValue.text("a b"),
    })
    assert tokens == ["flagA", 'name="a b"']


def test_encode_plain_string():
    """Strings without whitespace are not quoted."""
    tokens = OptionEncoder().encode({AnalysisOption.LOG_LEVEL.value: OptionValue.text("3")})
    assert tokens == ["--log-level=3"]


def test_encode_tab_counts_as_whitespace():
    """Any whitespace triggers quoting."""
    tokens = encode_options({"--channels": OptionValue.text("0\t1")})
    assert tokens == ['--channels="0\t1"']


def test_encode_keeps_insertion_order():
    """Tokens follow the mapping order."""
    options = {
        "--temp-dir": OptionValue.text("/tmp/ap"),
        "--parallel": OptionValue.flag(),
        "--align-to-minute": OptionValue.text(AlignToMinute.NO_ALIGNMENT.value),
    }
    assert encode_options(options) == [
        "--temp-dir=/tmp/ap",
        "--parallel",
        '--align-to-minute="No Alignment"',
    ]


def test_encode_empty():
    assert encode_options({}) == []


def test_embedded_quotes_pass_through():
    """Quote characters are not escaped."""
    assert encode_options({"n": OptionValue.text('say "hi"')}) == ['n="say "hi""']
