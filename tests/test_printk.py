import math

import pytest

from modemlink.printk import float_to_str, format_string, print_formatted


# Worked examples documented alongside the formatter.
@pytest.mark.parametrize(
    "fmt, expected",
    [
        ("a=%d", "a=1234"),
        ("a=%d%%", "a=1234%"),
        ("a=%2d", "a=1234"),
    ],
)
def test_documented_integer_examples(fmt, expected):
    assert format_string(fmt, 1234) == expected


def test_documented_padding_examples():
    assert format_string("a=%6d", 1234) == "a=" + "%6d" % 1234
    assert format_string("a=%06d", 1234) == "a=" + "%06d" % 1234
    assert format_string("a=%-6d", 1234) == "a=" + "%-6d" % 1234


def test_documented_char_and_string_examples():
    assert format_string("c=%c", "A") == "c=A"
    assert format_string("c=%x", ord("A")) == "c=41"
    assert format_string("s[]=%s", "Hello,World") == "s[]=Hello,World"


@pytest.mark.parametrize(
    "fmt, value",
    [
        ("%d", 0),
        ("%d", -5),
        ("%5d", -5),
        ("%05d", -5),
        ("%-5d|", -5),
        ("%+d", 7),
        ("% d", 7),
        ("%+05d", 42),
        ("%i", 987654),
        ("%u", 3000000000),
        ("%o", 64),
        ("%8o", 511),
        ("%X", 48879),
        ("%08X", 48879),
        ("%-8X|", 48879),
        ("%s", "text"),
        ("%8s", "text"),
        ("%-8s|", "text"),
    ],
)
def test_matches_standard_printf(fmt, value):
    assert format_string(fmt, value) == fmt % value


def test_int_arguments_wrap_to_32_bits():
    assert format_string("%d", -(2**31)) == str(-(2**31))
    assert format_string("%d", 2**31) == str(-(2**31))
    assert format_string("%u", -1) == str(2**32 - 1)


def test_lower_case_x_still_prints_upper_case_digits():
    assert format_string("%x", 255) == format_string("%X", 255)
    assert format_string("%x", 255) == "%X" % 255


def test_binary_and_pointer():
    assert format_string("%b", 10) == format(10, "b")
    assert format_string("%08b", 5) == format(5, "08b")
    assert format_string("%p", 0x20001000) == format(0x20001000, "X")


def test_pound_flag_adds_prefix():
    result = format_string("%#x", 255)
    assert result.startswith("0x")
    assert result[2:] == format_string("%x", 255)


def test_pound_with_zero_pad_does_not_count_prefix():
    result = format_string("%#06x", 255)
    assert result.startswith("0x")
    assert len(result) == 2 + 6
    assert result.endswith("FF")


def test_pound_with_space_pad_counts_prefix():
    result = format_string("%#6x", 255)
    assert len(result) == 6
    assert result.strip() == "0x" + "%X" % 255


def test_newline_becomes_crlf():
    assert format_string("a\nb") == "a\r\nb"


def test_unknown_directive_prints_its_character():
    assert format_string("%q") == "q"
    assert format_string("100%%") == "100%"


def test_truncated_directive_at_end_is_dropped():
    assert format_string("abc%") == "abc"
    assert format_string("abc%-08") == "abc"


def test_char_accepts_code_points():
    assert format_string("%c%c", 72, 105) == "Hi"


def test_string_precision_truncates():
    assert format_string("%.3s", "Hello") == "Hello"[:3]
    assert format_string("%.0s", "Hello") == "Hello"


def test_string_padding_uses_full_length():
    result = format_string("%6.3s", "Hello")
    assert result.endswith("Hel")
    assert len(result) == 6 - len("Hello") + 3


def test_none_string_prints_nothing():
    assert format_string("[%s]", None) == "[]"


def test_percent_n_records_count():
    seen = []
    result = format_string("ab\n%ncd", seen)
    assert seen == [len("ab\r\n")]
    assert result == "ab\r\ncd"


def test_float_default_precision_is_eight():
    result = format_string("%f", 2.25)
    whole, fraction = result.split(".")
    assert whole == "2"
    assert len(fraction) == 8
    assert fraction.startswith("25")


def test_float_explicit_precision():
    assert format_string("%.2f", 3.5) == float_to_str(3.5, 2)
    assert format_string("%.4f", 2.25) == float_to_str(2.25, 4)


def test_float_long_modifier_without_precision_uses_full_fraction():
    assert format_string("%lf", 0.5) == float_to_str(0.5, 0)
    assert len(format_string("%lf", 0.5).split(".")[1]) == 17


def test_float_negative_and_padding():
    body = float_to_str(1.5, 2)
    assert format_string("%.2f", -1.5) == "-" + body
    assert format_string("%10.2f", -1.5) == " " * (10 - len(body) - 1) + "-" + body
    assert format_string("%010.2f", -1.5) == "-" + "0" * (10 - len(body) - 1) + body
    assert format_string("%-10.2f|", 1.5) == body + " " * (10 - len(body)) + "|"
    assert format_string("%+.2f", 1.5) == "+" + body


def test_float_to_str_keeps_trailing_zeros():
    assert float_to_str(2.25, 4) == "2.2500"


def test_float_to_str_truncates():
    assert float_to_str(1.125, 1) == "1.1"
    assert float_to_str(1.75, 1).startswith("1.7")


def test_float_to_str_leading_fraction_zeros():
    result = float_to_str(0.0625, 3)
    assert result.startswith("0.0")
    assert float(result) == pytest.approx(0.062, abs=1e-9)


@pytest.mark.parametrize("value", [7.0, 0.0, 3.01])
def test_float_to_str_zero_fraction(value):
    result = float_to_str(value, 1)
    assert result == f"{int(value)}.0"


@pytest.mark.parametrize("value, precision", [(0.25, 3), (12.5, 5), (100.375, 6)])
def test_float_to_str_round_trips_exact_values(value, precision):
    assert float(float_to_str(value, precision)) == value


def test_float_to_str_rejects_bad_input():
    with pytest.raises(ValueError):
        float_to_str(1.0, -1)
    with pytest.raises(ValueError):
        float_to_str(math.nan, 2)
    with pytest.raises(ValueError):
        float_to_str(math.inf, 2)
    with pytest.raises(ValueError):
        float_to_str(-1.5, 2)


def test_missing_argument_raises():
    with pytest.raises(TypeError):
        format_string("%d %d", 1)


def test_non_string_for_s_raises():
    with pytest.raises(TypeError):
        format_string("%s", 12)


def test_float_for_integer_directive_raises():
    with pytest.raises(TypeError):
        format_string("%d", 1.5)


def test_print_formatted_sends_each_character():
    sent = []
    count = print_formatted(sent.append, "x=%d\n", 1234)
    assert "".join(sent) == format_string("x=%d\n", 1234)
    assert count == len(sent)
    assert all(len(ch) == 1 for ch in sent)


def test_print_formatted_empty_format():
    sent = []
    assert print_formatted(sent.append, "") == 0
    assert sent == []