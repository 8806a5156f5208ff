import pytest

from fix_datasource_azure.json_bender import S, F, Bend, MapValue, AsInt, AsBool, BendingError, bend

source = {"name": "mi1", "properties": {"vCores": "8", "enabled": "true", "redundancy": "Geo"}, "list": [1, 2]}


def test_select() -> None:
    assert S("name")(source) == "mi1"
    assert S("properties", "vCores")(source) == "8"
    assert S("list", 1)(source) == 2
    assert S("does", "not", "exist")(source) is None
    assert S("does_not_exist", default={})(source) == {}
    with pytest.raises(ValueError):
        S()


def test_compose() -> None:
    assert (S("properties", "vCores") >> AsInt())(source) == 8
    assert (S("properties", "enabled") >> AsBool())(source) is True
    assert (S("properties", "redundancy") >> MapValue({"Geo": "GRS"}))(source) == "GRS"
    assert (S("name") >> F(lambda x, suffix: x + suffix, "-x"))(source) == "mi1-x"
    # the next bender is not called on None
    assert (S("missing") >> F(lambda x: x.upper()))(source) is None


def test_or_else() -> None:
    assert S("missing").or_else(S("name"))(source) == "mi1"
    assert S("name").or_else(S("missing"))(source) == "mi1"


def test_bend() -> None:
    mapping = {"name": S("name"), "props": S("properties") >> Bend({"cores": S("vCores") >> AsInt()})}
    assert bend(mapping, source) == {"name": "mi1", "props": {"cores": 8}}
    # Bend on a missing object yields None, an empty object is still bent
    assert bend({"props": S("missing") >> Bend({"a": S("a")})}, source) == {"props": None}
    assert bend({"props": S("empty") >> Bend({"a": S("a")})}, {"empty": {}}) == {"props": {"a": None}}


def test_bend_error() -> None:
    def fail(_: object) -> None:
        raise ValueError("nope")

    with pytest.raises(BendingError) as ex:
        bend({"broken": S("name") >> F(fail)}, source)
    assert "broken" in str(ex.value)
