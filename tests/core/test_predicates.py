from deferred.core.predicates import (
    Predicate,
    at_least,
    contains,
    describe_predicate,
    equal_to,
    greater_than,
    is_not_none,
    satisfies,
)


class TestPredicates:
    """Tests for self-describing predicates."""

    def test_equal_to(self):
        assert equal_to(3)(3)
        assert not equal_to(3)(2)
        assert str(equal_to(3)) == "a value equal to 3"

    def test_comparisons_tolerate_none(self):
        """Test that ordering predicates reject None instead of raising."""
        assert not greater_than(1)(None)
        assert not at_least(1)(None)
        assert not contains("x")(None)

    def test_comparisons(self):
        assert greater_than(1)(2)
        assert not greater_than(2)(2)
        assert at_least(2)(2)
        assert contains("b")("abc")
        assert is_not_none()(0)
        assert not is_not_none()(None)

    def test_satisfies_uses_given_description(self):
        ready = satisfies(lambda s: s == "READY", "status is READY")
        assert ready("READY")
        assert ready.description == "status is READY"

    def test_combinators(self):
        """Test and/or/not composition and their descriptions."""
        between = at_least(1) & (lambda v: v < 5)
        assert between(3)
        assert not between(7)
        assert between.description.startswith("(a value of at least 1 and")

        either = equal_to(1) | equal_to(2)
        assert either(2)
        assert str(either) == "(a value equal to 1 or a value equal to 2)"

        assert (~equal_to(1))(2)
        assert str(~equal_to(1)) == "not a value equal to 1"

    def test_result_is_coerced_to_bool(self):
        assert Predicate(lambda v: v, "truthy")([1]) is True


class TestDescribePredicate:
    """Tests for describe_predicate."""

    def test_uses_description_attribute(self):
        assert describe_predicate(equal_to(1)) == "a value equal to 1"

    def test_uses_function_name(self):
        def is_ready(value):
            return value

        assert describe_predicate(is_ready) == "a value satisfying is_ready"

    def test_falls_back_to_repr_for_lambdas(self):
        assert describe_predicate(lambda v: v).startswith("a value satisfying <function")
