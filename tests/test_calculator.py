import sys, pathlib
sys.path.insert(0, str(pathlib.Path(__file__).parent.parent))

import pytest

from calculator import Calculator, main


def press(calc, keys):
    for key in keys:
        calc.handle_key(key)
    calc.handle_key('Enter')
    return calc


def test_evaluate_records_history():
    calc = press(Calculator(), "2+3")
    assert calc.display == "5"
    assert calc.expression == "5"
    assert calc.is_result
    assert calc.history[0].expression == "2+3"
    assert calc.history[0].result == "5"
    assert calc.notice == "Result saved to history"


def test_operator_continues_from_result():
    calc = press(Calculator(), "2+3")
    press(calc, "*2")
    assert calc.display == "10"
    assert [e.expression for e in calc.history] == ["5*2", "2+3"]  # newest first


def test_continue_from_small_result():
    calc = press(Calculator(), "1/100000")
    assert calc.display == "0.00001"
    press(calc, "*100000")
    assert calc.display == "1"
    assert calc.history[0].expression == "0.00001*100000"


def test_non_finite_result_is_kept_in_history():
    huge = "9" * 200
    calc = press(Calculator(), f"{huge}*{huge}")
    assert calc.display == "Error"
    assert calc.is_result
    assert calc.last_error is None
    assert calc.history[0].result == "Error"


def test_digit_after_result_starts_new_expression():
    calc = press(Calculator(), "2+3")
    calc.handle_key('7')
    assert calc.expression == "7"
    assert calc.display == "7"
    assert not calc.is_result


def test_failed_evaluation_shows_error():
    calc = press(Calculator(), "5/0")
    assert calc.display == "Error"
    assert calc.expression == ""
    assert calc.is_result
    assert calc.last_error == "Division by zero"
    assert calc.history == []


def test_operator_after_error_starts_clean():
    calc = press(Calculator(), "(1")
    calc.handle_key('-')
    assert calc.expression == "-"
    press(calc, "4")
    assert calc.display == "-4"


def test_empty_expression_is_noop():
    calc = Calculator()
    assert calc.evaluate() == "0"
    assert calc.history == []
    assert not calc.is_result


def test_decimal_only_once_per_number():
    calc = Calculator()
    for key in "1..5":
        calc.handle_key(key)
    assert calc.expression == "1.5"
    assert calc.display == "1.5"


def test_decimal_on_fresh_display():
    calc = Calculator()
    calc.handle_key('.')
    assert calc.display == "0."
    press(calc, "5")
    assert calc.display == "0.5"


def test_operator_resets_display():
    calc = Calculator()
    for key in "12+":
        calc.handle_key(key)
    assert calc.display == "0"
    assert calc.expression == "12+"


def test_backspace():
    calc = Calculator()
    for key in "12":
        calc.handle_key(key)
    calc.handle_key('Backspace')
    assert (calc.expression, calc.display) == ("1", "1")
    calc.handle_key('Backspace')
    assert (calc.expression, calc.display) == ("", "0")


def test_backspace_after_result_clears():
    calc = press(Calculator(), "8")
    calc.handle_key('Backspace')
    assert (calc.expression, calc.display, calc.is_result) == ("", "0", False)


def test_clear_key():
    calc = Calculator()
    for key in "9*9C":
        calc.handle_key(key)
    assert (calc.expression, calc.display) == ("", "0")


def test_unknown_keys_are_ignored():
    calc = Calculator()
    for key in "x y":
        calc.handle_key(key)
    assert (calc.expression, calc.display) == ("", "0")


def test_unknown_operator_rejected():
    with pytest.raises(ValueError):
        Calculator().operator('^')


def test_memory_register():
    calc = press(Calculator(), "7")
    calc.memory_add()
    assert calc.memory == 7.0
    press(calc, "3")
    calc.memory_subtract()
    assert calc.memory == 4.0

    calc.memory_recall()
    assert calc.expression == "4"
    assert not calc.is_result

    calc.memory_clear()
    assert calc.memory == 0.0
    assert calc.notice == "Memory cleared"


def test_memory_ignores_error_display():
    calc = press(Calculator(), "1/0")
    calc.memory_add()
    calc.memory_subtract()
    assert calc.memory == 0.0


def test_recent_history_limit():
    calc = Calculator()
    for n in range(15):
        press(calc, str(n))
    assert len(calc.recent_history()) == 10
    assert calc.recent_history(3)[0].expression == "14"
    calc.clear_history()
    assert calc.history == []


def test_repl(monkeypatch, capsys):
    lines = iter(["2+3", "*2", "5/0", "m+", "history", "quit"])
    monkeypatch.setattr('builtins.input', lambda prompt="": next(lines))

    main([])

    out = capsys.readouterr().out
    assert "= 5" in out
    assert "= 10" in out
    assert "Error: Division by zero" in out
    assert "5*2 = 10" in out
    assert "Goodbye!" in out


def test_repl_exits_on_eof(monkeypatch, capsys):
    def no_input(prompt=""):
        raise EOFError

    monkeypatch.setattr('builtins.input', no_input)
    main([])
    assert "Goodbye!" in capsys.readouterr().out
