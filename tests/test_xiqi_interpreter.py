import pytest
from xiqi.xiqi_parser import parse
from xiqi.xiqi_interpreter import Evaluator, evaluate, is_truthy, unwrap_return
from xiqi.xiqi_datatypes import (
    Integer, String, Array, Hash, Function, Error, ReturnValue, Environment,
    NULL, TRUE, FALSE, INT64_MIN,
)
from xiqi.xiqi_tokens import Token, TokenKind
from xiqi import xiqi_ast as ast


def run(source, env=None):
    program, errors = parse(source)
    assert errors == [], f"unexpected parser errors: {errors}"
    return evaluate(program, env if env is not None else Environment())


def assert_error(source, message):
    result = run(source)
    assert isinstance(result, Error), f"expected an error, got {result!r}"
    assert result.message == message


# --- Integers ---

@pytest.mark.parametrize("source, expected", [
    ("5", 5),
    ("10", 10),
    ("-5", -5),
    ("-10", -10),
    ("+5", 5),
    ("5 + 5 + 5 + 5 - 10", 10),
    ("2 * 2 * 2 * 2 * 2", 32),
    ("-50 + 100 + -50", 0),
    ("5 * 2 + 10", 20),
    ("5 + 2 * 10", 25),
    ("20 + 2 * -10", 0),
    ("50 / 2 * 2 + 10", 60),
    ("2 * (5 + 10)", 30),
    ("3 * 3 * 3 + 10", 37),
    ("3 * (3 * 3) + 10", 37),
    ("(5 + 10 * 2 + 15 / 3) * 2 + -10", 50),
    ("7 / 2", 3),
    ("-7 / 2", -3),
    ("7 / -2", -3),
    ("-7 / -2", 3),
])
def test_integer_arithmetic(source, expected):
    assert run(source) == Integer(expected)


def test_integer_arithmetic_wraps_to_64_bits():
    assert run("9223372036854775807 + 1") == Integer(INT64_MIN)
    assert run("-9223372036854775807 - 2") == Integer(9223372036854775807)
    assert run("4611686018427387904 * 4") == Integer(0)


def test_unary_minus_builds_a_new_integer():
    env = Environment()
    run("let a = 5; let b = -a;", env)
    assert env.get("a") == Integer(5)
    assert env.get("b") == Integer(-5)


# --- Booleans ---

@pytest.mark.parametrize("source, expected", [
    ("true", True),
    ("false", False),
    ("1 < 2", True),
    ("1 > 2", False),
    ("1 < 1", False),
    ("1 > 1", False),
    ("1 <= 1", True),
    ("2 <= 1", False),
    ("1 >= 1", True),
    ("1 >= 2", False),
    ("1 == 1", True),
    ("1 != 1", False),
    ("1 == 2", False),
    ("1 != 2", True),
    ("true == true", True),
    ("false == false", True),
    ("true == false", False),
    ("true != false", True),
    ("(1 < 2) == true", True),
    ("(1 < 2) == false", False),
    ("(1 > 2) == false", True),
])
def test_boolean_expressions(source, expected):
    result = run(source)
    assert result is (TRUE if expected else FALSE)


@pytest.mark.parametrize("source, expected", [
    ("!true", False),
    ("!false", True),
    ("!5", False),
    ("!0", False),
    ("!!true", True),
    ("!!false", False),
    ("!!5", True),
    ('!""', False),
    ("!if (false) { 1 }", True),
])
def test_bang_operator(source, expected):
    assert run(source) is (TRUE if expected else FALSE)


def test_truthiness():
    assert is_truthy(Integer(0))
    assert is_truthy(String(""))
    assert is_truthy(Array([]))
    assert not is_truthy(NULL)
    assert not is_truthy(FALSE)
    assert is_truthy(TRUE)


# --- Conditionals ---

@pytest.mark.parametrize("source, expected", [
    ("if (true) { 10 }", Integer(10)),
    ("if (false) { 10 }", NULL),
    ("if (1) { 10 }", Integer(10)),
    ("if (0) { 10 } else { 20 }", Integer(10)),
    ("if (1 < 2) { 10 }", Integer(10)),
    ("if (1 > 2) { 10 }", NULL),
    ("if (1 > 2) { 10 } else { 20 }", Integer(20)),
    ("if (1 < 2) { 10 } else { 20 }", Integer(10)),
    ("if (true) { }", NULL),
    ("if (true) { let x = 1; }", NULL),
])
def test_if_else_expressions(source, expected):
    assert run(source) == expected


# --- Return ---

@pytest.mark.parametrize("source, expected", [
    ("return 10;", 10),
    ("return 10; 9;", 10),
    ("return 2 * 5; 9;", 10),
    ("9; return 2 * 5; 9;", 10),
    ("if (10 > 1) { return 10; }", 10),
    ("if (10 > 1) { if (10 > 1) { return 10; } return 1; }", 10),
    ("let f = fn(x) { return x; x + 10; }; f(10);", 10),
    ("let f = fn(x) { let result = x + 10; return result; return 10; }; f(10);", 20),
    ("let f = fn() { if (true) { return 1; } 2 }; f() + 10", 11),
    ("let f = fn() { { return 3; } 4 }; f()", 3),
])
def test_return_statements(source, expected):
    assert run(source) == Integer(expected)


def test_bare_return_yields_null():
    assert run("return;") is NULL
    assert run("let f = fn() { return; }; f()") is NULL


def test_return_value_never_escapes_a_program():
    result = run("let f = fn() { return 1; }; f()")
    assert not isinstance(result, ReturnValue)
    assert result == Integer(1)


def test_unwrap_return():
    assert unwrap_return(ReturnValue(Integer(1))) == Integer(1)
    assert unwrap_return(None) is NULL
    assert unwrap_return(TRUE) is TRUE


# --- Errors ---

@pytest.mark.parametrize("source, message", [
    ("5 + true;", "type mismatch: INTEGER + BOOLEAN"),
    ("5 + true; 5;", "type mismatch: INTEGER + BOOLEAN"),
    ("-true", "unknown operator: -BOOLEAN"),
    ("+true", "unknown operator: +BOOLEAN"),
    ('-"a"', "unknown operator: -STRING"),
    ("true + false;", "unknown operator: BOOLEAN + BOOLEAN"),
    ("true < false;", "unknown operator: BOOLEAN < BOOLEAN"),
    ("5; true + false; 5", "unknown operator: BOOLEAN + BOOLEAN"),
    ("if (10 > 1) { true + false; }", "unknown operator: BOOLEAN + BOOLEAN"),
    ("if (10 > 1) { if (10 > 1) { return true + false; } return 1; }", "unknown operator: BOOLEAN + BOOLEAN"),
    ("foobar", "identifier not found: foobar"),
    ('"Hello" - "World"', "unknown operator: STRING - STRING"),
    ('"a" == "a"', "unknown operator: STRING == STRING"),
    ("[1] + [2]", "unknown operator: ARRAY + ARRAY"),
    ("[1] == true", "type mismatch: ARRAY == BOOLEAN"),
    ('hash{"name": "Monkey"}[fn(x) { x }];', "unusable as hash key: FUNCTION"),
    ("hash{[1]: 2}", "unusable as hash key: ARRAY"),
    ("10 / 0", "division by zero"),
    ("1(2)", "not a function: INTEGER"),
    ("1[0]", "index operator not supported: INTEGER"),
    ('[1, 2]["a"]', "index operator not supported: ARRAY"),
    ("let f = fn(a, b) { a }; f(1)", "wrong number of arguments. got=1, want=2"),
    ("let f = fn() { 1 }; f(1, 2)", "wrong number of arguments. got=2, want=0"),
])
def test_error_handling(source, message):
    assert_error(source, message)


@pytest.mark.parametrize("source, missing", [
    ("len(foo)", "foo"),
    ("[1, x, 3]", "x"),
    ("let a = y; 5", "y"),
    ("hash{1: z}", "z"),
    ("hash{k: 1}", "k"),
    ("missing(1)", "missing"),
    ("let f = fn(a) { a }; f(nope)", "nope"),
    ("[1][idx]", "idx"),
    ("if (c) { 1 }", "c"),
    ("-n", "n"),
    ("1 + r", "r"),
    ("q = w", "w"),
])
def test_errors_propagate_out_of_subexpressions(source, missing):
    assert_error(source, f"identifier not found: {missing}")


def test_error_stops_argument_evaluation():
    env = Environment()
    result = run("let f = fn(a, b) { a }; f(boom, x = 1)", env)
    assert result == Error("identifier not found: boom")
    assert env.get("x") is None


def test_error_from_function_body_propagates_to_program():
    assert_error("let f = fn() { let x = 1; x + true; 99 }; f(); 5", "type mismatch: INTEGER + BOOLEAN")


# --- Bindings ---

@pytest.mark.parametrize("source, expected", [
    ("let a = 5; a;", 5),
    ("let a = 5 * 5; a;", 25),
    ("let a = 5; let b = a; b;", 5),
    ("let a = 5; let b = a; let c = a + b + 5; c;", 15),
])
def test_let_statements(source, expected):
    assert run(source) == Integer(expected)


def test_let_statement_has_no_value():
    assert run("let a = 5;") is None


def test_let_shadowing_in_a_branch_does_not_leak():
    assert run("let a = 6; if (true) { let a = 5; } a;") == Integer(6)


def test_assignment_in_a_bare_block_leaks():
    assert run("let a = 10; { a = 5; } a;") == Integer(5)


def test_let_inside_bare_block_is_scoped():
    assert_error("{ let q = 1; } q", "identifier not found: q")


def test_assignment_value_is_the_assigned_value():
    assert run("let a = 1; a = 2") == Integer(2)
    assert run("let a = 1; let b = 2; a = b = 7; a + b") == Integer(14)


def test_assignment_to_unbound_name_binds_in_root_frame():
    env = Environment()
    assert run("let f = fn() { z = 3; }; f(); z", env) == Integer(3)
    assert env.get("z") == Integer(3)


def test_bare_block_value():
    assert run("{ 1; 2 }") == Integer(2)
    assert run("{}") is NULL
    assert run("let x = { let y = 4; y * 2 }; x") == Integer(8)


# --- Functions ---

def test_function_object():
    result = run("fn(x) { x + 2; };")
    assert isinstance(result, Function)
    assert [p.value for p in result.parameters] == ["x"]
    assert result.body.to_str_repr() == "{(x + 2)}"
    assert result.inspect() == "fn(x) {(x + 2)}"


@pytest.mark.parametrize("source, expected", [
    ("let identity = fn(x) { x; }; identity(5);", 5),
    ("let identity = fn(x) { return x; }; identity(5);", 5),
    ("let double = fn(x) { x * 2; }; double(5);", 10),
    ("let add = fn(x, y) { x + y; }; add(5, 5);", 10),
    ("let add = fn(x, y) { x + y; }; add(5 + 5, add(5, 5));", 20),
    ("fn(x) { x; }(5)", 5),
    ("let apply = fn(f, x) { f(x) }; apply(fn(n) { n * 3 }, 4)", 12),
])
def test_function_application(source, expected):
    assert run(source) == Integer(expected)


def test_empty_function_body_yields_null():
    assert run("let f = fn() { }; f()") is NULL
    assert run("let f = fn() { let x = 1; }; f()") is NULL


def test_closures_capture_the_defining_environment():
    source = "let newAdder = fn(x) { fn(y) { x + y }; }; let addTwo = newAdder(2); addTwo(3);"
    assert run(source) == Integer(5)


def test_closures_ignore_the_call_site_environment():
    assert run("let x = 1; let f = fn() { x }; let g = fn(x) { f() }; g(99)") == Integer(1)


def test_closures_share_their_captured_frame():
    source = """
    let make = fn() { let n = 0; fn() { n = n + 1; n } };
    let counter = make();
    let other = make();
    counter(); counter(); other();
    counter()
    """
    assert run(source) == Integer(3)


def test_parameters_shadow_outer_names():
    assert run("let x = 1; let f = fn(x) { x = x + 10; x }; f(5) + x") == Integer(16)


def test_recursive_function():
    source = "let fib = fn(n) { if (n < 2) { n } else { fib(n - 1) + fib(n - 2) } }; fib(10)"
    assert run(source) == Integer(55)


def test_builtins_can_be_shadowed():
    assert run("let len = fn(x) { 42 }; len([1])") == Integer(42)


# --- Strings ---

@pytest.mark.parametrize("source, expected", [
    ('"Hello World!"', "Hello World!"),
    ('"Hello" + " " + "World!"', "Hello World!"),
    ('"a" + 1', "a1"),
    ('1 + "a"', "1a"),
    ('"x" + true', "xtrue"),
    ('"list: " + [1, 2]', "list: [1, 2]"),
])
def test_strings(source, expected):
    assert run(source) == String(expected)


# --- Arrays ---

def test_array_literals():
    result = run("[1, 2 * 2, 3 + 3]")
    assert isinstance(result, Array)
    assert result.elements == (Integer(1), Integer(4), Integer(6))


@pytest.mark.parametrize("source, expected", [
    ("[1, 2, 3][0]", Integer(1)),
    ("[1, 2, 3][1]", Integer(2)),
    ("[1, 2, 3][2]", Integer(3)),
    ("let i = 0; [1][i];", Integer(1)),
    ("[1, 2, 3][1 + 1];", Integer(3)),
    ("let myArray = [1, 2, 3]; myArray[2];", Integer(3)),
    ("let myArray = [1, 2, 3]; myArray[0] + myArray[1] + myArray[2];", Integer(6)),
    ("let myArray = [1, 2, 3]; let i = myArray[0]; myArray[i]", Integer(2)),
    ("[1, 2, 3][3]", NULL),
    ("[1, 2, 3][-1]", NULL),
    ("[][0]", NULL),
])
def test_array_index_expressions(source, expected):
    assert run(source) == expected


# --- Hashes ---

def test_hash_literals():
    source = """let two = "two";
    hash{
        "one": 10 - 9,
        two: 1 + 1,
        "thr" + "ee": 6 / 2,
        4: 4,
        true: 5,
        false: 6
    }"""
    result = run(source)
    assert isinstance(result, Hash)
    expected = {
        String("one").hash_key(): Integer(1),
        String("two").hash_key(): Integer(2),
        String("three").hash_key(): Integer(3),
        Integer(4).hash_key(): Integer(4),
        TRUE.hash_key(): Integer(5),
        FALSE.hash_key(): Integer(6),
    }
    assert {k: pair.value for k, pair in result.pairs.items()} == expected


@pytest.mark.parametrize("source, expected", [
    ('hash{"foo": 5}["foo"]', Integer(5)),
    ('hash{"foo": 5}["bar"]', NULL),
    ('let key = "foo"; hash{"foo": 5}[key]', Integer(5)),
    ('hash{}["foo"]', NULL),
    ("hash{5: 5}[5]", Integer(5)),
    ("hash{true: 5}[true]", Integer(5)),
    ("hash{false: 5}[false]", Integer(5)),
    ("hash{1: 1, 1: 2}[1]", Integer(2)),
    ('hash{1: "int", true: "bool"}[true]', String("bool")),
    ('hash{"one": 1}["o" + "ne"]', Integer(1)),
])
def test_hash_index_expressions(source, expected):
    assert run(source) == expected


def test_hash_keeps_insertion_order():
    assert run('hash{"b": 1, "a": 2, 3: [4]}').inspect() == "{b: 1, a: 2, 3: [4]}"


# --- Evaluator behaviour ---

def test_evaluating_the_same_ast_twice_gives_equal_values():
    program, _ = parse("let adder = fn(x) { fn(y) { x + y } }; let h = hash{\"k\": [adder(1)(2)]}; h")
    first = evaluate(program, Environment())
    second = evaluate(program, Environment())
    assert first == second
    assert first.inspect() == "{k: [3]}"


def test_unknown_node_kind_raises_type_error():
    class Bogus(ast.Expression):
        pass

    with pytest.raises(TypeError, match="cannot evaluate node of type Bogus"):
        Evaluator().eval(Bogus(Token(TokenKind.ILLEGAL, "?")), Environment())


def test_one_evaluator_serves_independent_environments():
    evaluator = Evaluator()
    first, second = Environment(), Environment()
    evaluator.eval(parse("let x = 1;")[0], first)
    evaluator.eval(parse("let x = 2;")[0], second)
    assert evaluator.eval(parse("x")[0], first) == Integer(1)
    assert evaluator.eval(parse("x")[0], second) == Integer(2)
    assert vars(evaluator).keys() == {"side_effects", "builtins"}


def test_debug_output_goes_to_stderr(monkeypatch, capsys):
    monkeypatch.setenv("XIQI_DEBUG", "1")
    run("let f = fn(x) { x }; f(1); len([]); nothere")
    out, err = capsys.readouterr()
    assert out == ""
    assert "[DBG] apply ['x'] argc 1" in err
    assert "[DBG] builtin len argc 1" in err
    assert "[DBG] error identifier not found: nothere" in err


def test_no_debug_output_by_default(monkeypatch, capsys):
    monkeypatch.delenv("XIQI_DEBUG", raising=False)
    run("let f = fn(x) { x }; f(1)")
    assert capsys.readouterr().err == ""
