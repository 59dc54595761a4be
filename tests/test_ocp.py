import unittest
import warnings

import casadi as cs
import numpy as np
from parameterized import parameterized

from csocp import FlatOcp, ModelDescription, RawVariable
from csocp.core.data import subsevalf
from csocp.core.errors import (
    ConfigurationError,
    CyclicDependencyError,
    ModelingError,
    NewtonConvergenceWarning,
    PluginNotFoundError,
    StructuralDegeneracyWarning,
)
from csocp.ocp import OCP_OPTIONS, Role, Variable
from csocp.ocp.equations import substitute_list
from csocp.ocp.expressions import _HANDLERS, ExpressionBuilder, ExprNode
from csocp.ocp.ingestion import parse_variable, path_constraint, qualified_name

OFF = {"scale_variables": False, "scale_equations": False, "eliminate_dependent": False}


def I(name: str) -> tuple:
    return ("Identifier", name)


def D(name: str) -> tuple:
    return ("Der", name)


def model(variables: list, **equations) -> dict:
    return {
        "variables": [v if isinstance(v, dict) else {"name": v} for v in variables],
        **equations,
    }


def evaluate(ocp: FlatOcp, expr: cs.SX, **values: float) -> float:
    old, new = [], []
    for name, value in values.items():
        if name.startswith("der_"):
            old.append(ocp.variable(name[4:]).der())
        else:
            old.append(ocp.variable(name).var)
        new.append(value)
    return float(subsevalf(expr, cs.vertcat(*old), cs.DM(new)))


class TestIngestion(unittest.TestCase):
    def test_qualified_name(self):
        self.assertEqual(qualified_name(["a", ("b", 2), "c"]), "a.b[2].c")
        self.assertEqual(qualified_name(["a", ("b", None)]), "a.b")
        self.assertEqual(qualified_name("a.b"), "a.b")

    @parameterized.expand(
        [
            ("Leq", -np.inf, 0.0),
            ("Geq", 0.0, np.inf),
            ("Eq", 0.0, 0.0),
            ("opt:ConstraintLeq", -np.inf, 0.0),
        ]
    )
    def test_path_constraint(self, kind: str, lb: float, ub: float):
        e = cs.SX.sym("e")
        residual, lb_, ub_ = path_constraint(kind, e, cs.SX(5))
        self.assertEqual((lb_, ub_), (lb, ub))
        self.assertEqual(float(subsevalf(residual, e, 7)), 2)

    def test_path_constraint__raises__with_unknown_kind(self):
        with self.assertRaises(ConfigurationError):
            path_constraint("Lt", cs.SX(1), cs.SX(0))

    def test_parse_variable(self):
        raw = RawVariable(
            ["m", ("x", 1)], causality="input", nominal=2, min=4, start=1, free=True
        )
        v = parse_variable(raw)
        self.assertEqual(v.name, "m.x[1]")
        self.assertEqual(v.causality.value, "input")
        self.assertEqual((v.nominal, v.scaled_min, v.scaled_start), (2, 2, 0.5))
        self.assertEqual(v.max, np.inf)
        self.assertTrue(v.is_bounded)

    @parameterized.expand([("causality",), ("variability",), ("alias",)])
    def test_parse_variable__raises__with_unknown_tag(self, field: str):
        raw = RawVariable("x", **{field: "a_random_tag"})
        with self.assertRaises(ConfigurationError):
            parse_variable(raw)

    def test_from_dict__raises__with_unknown_fields(self):
        with self.assertRaisesRegex(ConfigurationError, "a_random_field"):
            ModelDescription.from_dict({"a_random_field": []})
        with self.assertRaisesRegex(ConfigurationError, "a_random_field"):
            ModelDescription.from_dict(
                {"variables": [{"name": "x", "a_random_field": 1}]}
            )

    def test_from_dict(self):
        desc = ModelDescription.from_dict(
            model(["x", "y"], binding=[["y", I("x")]], t0=0, tf=5)
        )
        self.assertIsInstance(desc.variables[1], RawVariable)
        self.assertEqual(desc.binding, [("y", I("x"))])
        self.assertEqual((desc.t0, desc.tf), (0, 5))


class TestVariable(unittest.TestCase):
    def test_init__raises__with_invalid_nominal(self):
        for nominal in (0, np.inf):
            with self.assertRaises(ModelingError):
                Variable("x", nominal=nominal)

    def test_der__is_lazy(self):
        v = Variable("x")
        self.assertFalse(v.has_der)
        self.assertIs(v.highest(), v.var)
        dx = v.der()
        self.assertTrue(v.has_der)
        self.assertIs(v.der(), dx)
        self.assertIs(v.highest(), dx)
        self.assertEqual(dx.name(), "der(x)")
        v.clear_der()
        self.assertFalse(v.has_der)

    def test_at_time__caches_symbols(self):
        v = Variable("x")
        self.assertIs(v.at_time(1), v.at_time(1.0))
        self.assertEqual(v.at_time(1).name(), "x(1)")
        self.assertEqual(len(v.timed), 1)


class TestExpressions(unittest.TestCase):
    def setUp(self):
        self.x = Variable("x")
        self.t = cs.SX.sym("t")
        lookup = {"x": self.x}
        self.build = ExpressionBuilder(lookup.__getitem__, self.t)

    def evaluate(self, expr: cs.SX) -> float:
        return float(subsevalf(expr, cs.vertcat(self.x.var, self.t), cs.DM([0.5, 2])))

    def test_every_node_has_a_handler(self):
        self.assertSetEqual(set(_HANDLERS), set(ExprNode))

    @parameterized.expand(
        [
            (("Add", I("x"), 1), 1.5),
            (("exp:Sub", I("x"), 1), -0.5),
            (("Mul", I("x"), 4), 2.0),
            (("Div", I("x"), 2), 0.25),
            (("Neg", I("x")), -0.5),
            (("Pow", I("x"), 2), 0.25),
            (("Exp", 0), 1.0),
            (("Log", 1), 0.0),
            (("Sqrt", ("Mul", I("x"), 0.5)), 0.5),
            (("Sin", I("x")), np.sin(0.5)),
            (("Cos", I("x")), np.cos(0.5)),
            (("Tan", I("x")), np.tan(0.5)),
            (("Asin", I("x")), np.arcsin(0.5)),
            (("Acos", I("x")), np.arccos(0.5)),
            (("Atan", I("x")), np.arctan(0.5)),
            (("Time",), 2.0),
            (("IntegerLiteral", 3), 3.0),
            (("RealLiteral", 1.5), 1.5),
            (("Instant", 0.25), 0.25),
            (("NoEvent", ("LogLt", I("x"), 1), 10, 20), 10.0),
            (("NoEvent", ("LogGt", I("x"), 1), 10, 20), 20.0),
            (
                ("NoEvent", ("LogGt", I("x"), 1), 10, ("LogLt", I("x"), 1), 30, 40),
                30.0,
            ),
            (2, 2.0),
        ]
    )
    def test_build(self, tree, expected: float):
        self.assertAlmostEqual(self.evaluate(self.build(tree)), expected)

    def test_build__symbols(self):
        self.assertIs(self.build(("Der", "x")), self.x.der())
        self.assertIs(self.build(("TimedVariable", "x", 1)), self.x.at_time(1))

    def test_build__raises__with_invalid_trees(self):
        with self.assertRaises(ConfigurationError):
            self.build(("a_random_node", 1))
        with self.assertRaises(ConfigurationError):
            self.build("x")
        with self.assertRaises(ConfigurationError):
            self.build(())
        with self.assertRaises(ModelingError):
            self.build(("Add", 1))
        with self.assertRaises(ModelingError):
            self.build(("NoEvent", 1, 2))
        with self.assertRaisesRegex(ModelingError, "String literal 'hello'"):
            self.build(("StringLiteral", "hello"))


class TestClassification(unittest.TestCase):
    def test_sort_type(self):
        desc = model(
            [
                "x",
                {"name": "u", "causality": "input"},
                {"name": "p", "variability": "parameter", "free": True},
                {"name": "c", "variability": "constant", "nominal": 3},
                {"name": "a", "alias": "alias"},
                {"name": "d", "variability": "discrete"},
                {"name": "o", "causality": "output"},
            ],
            dynamic=[("Sub", D("x"), ("Mul", I("p"), I("u")))],
        )
        ocp = FlatOcp(desc, OFF)
        self.assertListEqual([v.name for v in ocp.x], ["x"])
        self.assertListEqual([v.name for v in ocp.u], ["u"])
        self.assertListEqual([v.name for v in ocp.p], ["p"])
        self.assertListEqual([v.name for v in ocp.y], ["c"])
        self.assertEqual(float(cs.evalf(ocp.dep[0])), 3)
        self.assertNotIn("a", ocp.variables)
        self.assertIsNone(ocp.variable("d").role)
        self.assertIsNone(ocp.variable("o").role)
        self.assertIs(ocp.variable("x").role, Role.DIFFERENTIAL)
        self.assertIs(ocp.variable("u").role, Role.CONTROL)

    def test_parse__raises__with_non_free_parameter(self):
        desc = model([{"name": "p", "variability": "parameter"}])
        with self.assertRaisesRegex(ModelingError, "'p' is not free"):
            FlatOcp(desc, OFF)

    def test_parse__raises__with_duplicate_variable(self):
        with self.assertRaisesRegex(ModelingError, "already been added"):
            FlatOcp(model(["x", "x"]), OFF)

    def test_parse__raises__with_unknown_variable(self):
        desc = model(["x"], dynamic=[("Sub", D("x"), I("y"))])
        with self.assertRaisesRegex(ModelingError, "No such variable: 'y'"):
            FlatOcp(desc, OFF)

    def test_parse__raises__with_wrong_number_of_equations(self):
        desc = model(["x", "z"], dynamic=[("Sub", D("x"), I("z"))])
        with self.assertRaisesRegex(ModelingError, "'dae' equations"):
            FlatOcp(desc, OFF)

    def test_parse__raises__with_duplicate_binding(self):
        desc = model(["y", "z"], binding=[("y", 1), ("y", 2)])
        with self.assertRaisesRegex(ModelingError, "more than one binding"):
            FlatOcp(desc, OFF)

    def test_parse__stores_path_constraints_and_horizon(self):
        desc = model(
            ["x", {"name": "u", "causality": "input"}],
            dynamic=[("Sub", D("x"), I("u"))],
            constraints=[("Leq", I("u"), 5), ("Geq", I("x"), -1)],
            mayer=[I("x")],
            lagrange=[("Mul", I("u"), I("u"))],
            t0=0,
            tf=10,
        )
        ocp = FlatOcp(desc)
        self.assertListEqual(ocp.path_min, [-np.inf, 0])
        self.assertListEqual(ocp.path_max, [0, np.inf])
        self.assertEqual(evaluate(ocp, ocp.path[0], u=7), 2)
        self.assertEqual(evaluate(ocp, ocp.lterm[0], u=3), 9)
        self.assertEqual((ocp.t0, ocp.tf), (0, 10))
        self.assertEqual(len(ocp.mterm), 1)


class TestElimination(unittest.TestCase):
    def test_eliminate_dependent__resolves_interdependencies(self):
        desc = model(
            ["x", "y1", "y2"],
            binding=[("y1", ("Mul", 2, I("y2"))), ("y2", ("Add", I("x"), 1))],
            dynamic=[("Sub", D("x"), I("y1"))],
        )
        ocp = FlatOcp(desc)
        y1, y2 = ocp.variable("y1"), ocp.variable("y2")
        self.assertIs(y1.role, Role.DEPENDENT)
        self.assertFalse(cs.depends_on(ocp.dep[0], y2.var))
        self.assertEqual(evaluate(ocp, ocp.dep[0], x=1), 4)
        self.assertFalse(cs.depends_on(ocp.dae[0], cs.vertcat(y1.var, y2.var)))

    def test_eliminate_interdependencies__raises__with_cycles(self):
        desc = model(
            ["a", "b", "c"],
            binding=[
                ("a", ("Add", I("b"), 1)),
                ("b", ("Mul", I("c"), 2)),
                ("c", ("Neg", I("a"))),
            ],
        )
        with self.assertRaises(CyclicDependencyError) as cm:
            FlatOcp(desc, OFF)
        self.assertEqual(cm.exception.cycle[0], cm.exception.cycle[-1])
        self.assertSetEqual(set(cm.exception.cycle), {"a", "b", "c"})

    def test_eliminate_dependent__is_noop_without_dependents(self):
        desc = model(["x"], dynamic=[("Add", D("x"), I("x"))])
        ocp = FlatOcp(desc, OFF)
        dae = ocp.dae
        ocp.eliminate_dependent()
        self.assertIs(ocp.dae, dae)

    def test_substitute_list__returns_list_unchanged_if_independent(self):
        x, y = cs.SX.sym("x"), cs.SX.sym("y")
        eqs = [x + 1, 2 * x]
        self.assertIs(substitute_list(eqs, y, cs.SX(3)), eqs)
        new = substitute_list(eqs, x, cs.SX(3))
        self.assertListEqual([float(cs.evalf(e)) for e in new], [4, 6])

    def test_make_algebraic__with_implicit_state(self):
        desc = model(["x", "z"], dynamic=[("Add", D("x"), I("z")), I("x")])
        ocp = FlatOcp(desc, OFF)
        x = ocp.variable("x")
        dx = x.der()
        ocp.make_algebraic("x")
        self.assertIs(x.role, Role.ALGEBRAIC)
        self.assertFalse(x.has_der)
        self.assertFalse(cs.depends_on(ocp.dae[0], dx))
        self.assertIn(x, ocp.x)

    def test_make_algebraic__raises__with_non_state(self):
        desc = model([{"name": "u", "causality": "input"}])
        ocp = FlatOcp(desc, OFF)
        with self.assertRaisesRegex(ModelingError, "not a differential state"):
            ocp.make_algebraic("u")

    def test_detect_algebraic(self):
        desc = model(
            ["x", "z"],
            dynamic=[("Add", D("x"), I("z")), ("Sub", I("z"), I("x"))],
        )
        ocp = FlatOcp(desc, {"detect_algebraic": True})
        self.assertIs(ocp.variable("x").role, Role.DIFFERENTIAL)
        self.assertIs(ocp.variable("z").role, Role.ALGEBRAIC)
        self.assertEqual(len(ocp.x), 2)


class TestScaling(unittest.TestCase):
    def test_scaling__of_variables_and_equations(self):
        desc = model(
            [{"name": "x", "nominal": 10, "start": 1}],
            dynamic=[("Add", D("x"), I("x"))],
        )
        ocp = FlatOcp(desc)
        self.assertTrue(ocp.scaled_variables and ocp.scaled_equations)
        np.testing.assert_allclose(ocp.equation_scaling, [10])
        self.assertEqual(ocp.scaler["x"], 10)
        self.assertAlmostEqual(evaluate(ocp, ocp.dae[0], x=2, der_x=1), 3)

    def test_scale_variables__divides_definitions_by_nominal(self):
        desc = model(
            ["x", {"name": "y", "nominal": 2}],
            binding=[("y", ("Mul", 4, I("x")))],
            dynamic=[("Sub", D("x"), I("y"))],
        )
        ocp = FlatOcp(desc)
        self.assertAlmostEqual(evaluate(ocp, ocp.dep[0], x=1), 2)

    def test_scaling__raises__when_out_of_order_or_repeated(self):
        desc = model(["x"], dynamic=[("Add", D("x"), I("x"))])
        ocp = FlatOcp(desc, OFF)
        with self.assertRaises(RuntimeError):
            ocp.scale_equations()
        ocp.scale_variables()
        with self.assertRaises(RuntimeError):
            ocp.scale_variables()
        ocp.scale_equations()
        with self.assertRaises(RuntimeError):
            ocp.scale_equations()

    def test_scale_equations__warns__with_degenerate_equation(self):
        desc = model(["x"], dynamic=[("Sub", ("Time",), 1)])
        with self.assertWarns(StructuralDegeneracyWarning):
            ocp = FlatOcp(desc)
        np.testing.assert_allclose(ocp.equation_scaling, [1])

    def test_init__raises__with_inconsistent_scaling_options(self):
        with self.assertRaises(ConfigurationError):
            FlatOcp(model([]), {"scale_variables": False})


class TestStructure(unittest.TestCase):
    DESC = model(
        ["x0", "x1"],
        dynamic=[
            ("Sub", ("Sub", I("x1"), I("x0")), 3),
            ("Sub", I("x0"), 2),
        ],
    )

    def test_sort_blt__sorts_equations_in_solving_order(self):
        ocp = FlatOcp(self.DESC, {"sort_blt": True})
        self.assertListEqual([v.name for v in ocp.x], ["x0", "x1"])
        self.assertEqual(ocp.blt.nb, 2)
        x1 = ocp.variable("x1").var
        self.assertFalse(cs.depends_on(ocp.dae[0], x1))
        self.assertTrue(cs.depends_on(ocp.dae[1], x1))

    @parameterized.expand([(False, ["x0", "x1"]), (True, ["x1", "x0"])])
    def test_sort_blt__with_states(self, with_x: bool, expected: list[str]):
        desc = model(
            ["x0", "x1"],
            dynamic=[("Add", D("x0"), I("x1")), D("x1")],
        )
        ocp = FlatOcp(desc, OFF)
        blt = ocp.sort_blt(with_x=with_x)
        self.assertIs(ocp.blt, blt)
        self.assertListEqual([v.name for v in ocp.x], expected)

    def test_make_explicit__solves_affine_blocks(self):
        ocp = FlatOcp(self.DESC, {"fully_explicit": True})
        self.assertListEqual(ocp.x, [])
        self.assertListEqual(ocp.dae, [])
        self.assertListEqual([v.name for v in ocp.y], ["x0", "x1"])
        self.assertListEqual([float(cs.evalf(e)) for e in ocp.dep], [2, 5])
        self.assertIsNone(ocp.blt)

    def test_make_explicit__raises__without_sorting(self):
        ocp = FlatOcp(self.DESC)
        with self.assertRaisesRegex(RuntimeError, "sort_blt"):
            ocp.make_explicit()

    def test_make_explicit__keeps_bounds_as_path_constraints(self):
        desc = model(
            [{"name": "x0", "nominal": 2, "min": 0, "max": 10}],
            dynamic=[("Sub", I("x0"), 2)],
        )
        ocp = FlatOcp(desc, {"fully_explicit": True})
        self.assertEqual((ocp.path_min, ocp.path_max), ([0], [5]))
        self.assertAlmostEqual(float(cs.evalf(ocp.path[0])), 1)
        self.assertAlmostEqual(float(cs.evalf(ocp.dep[0])), 1)

    def test_make_explicit__solves_large_affine_blocks(self):
        desc = model(
            ["x0", "x1", "x2", "x3"],
            dynamic=[
                ("Sub", ("Add", I("x0"), I("x1")), 3),
                ("Sub", ("Add", I("x1"), I("x2")), 5),
                ("Sub", ("Add", I("x2"), I("x3")), 7),
                ("Sub", ("Add", I("x3"), ("Mul", 2, I("x0"))), 6),
            ],
        )
        ocp = FlatOcp(desc, {"fully_explicit": True, "sort_blt": True})
        values = {v.name: float(cs.evalf(e)) for v, e in zip(ocp.y, ocp.dep)}
        for i in range(4):
            self.assertAlmostEqual(values[f"x{i}"], i + 1)

    def test_make_explicit__turns_derivatives_into_odes(self):
        desc = model(
            ["x", "z", {"name": "u", "causality": "input"}],
            dynamic=[
                ("Sub", ("Add", D("x"), ("Mul", 2, I("z"))), I("u")),
                ("Sub", I("z"), I("x")),
            ],
        )
        ocp = FlatOcp(desc, {"detect_algebraic": True, "fully_explicit": True})
        self.assertListEqual([v.name for v in ocp.xd], ["x"])
        self.assertListEqual([v.name for v in ocp.y], ["z"])
        self.assertAlmostEqual(evaluate(ocp, ocp.ode[0], x=3, u=1), -5)
        self.assertFalse(cs.depends_on(ocp.ode[0], ocp.variable("z").var))

    @parameterized.expand([(True, 6), (False, 15)])
    def test_make_explicit__solves_nonlinear_blocks(self, exact: bool, iters: int):
        desc = model(
            [{"name": "z", "start": 0.9}],
            dynamic=[("Sub", ("Add", ("Pow", I("z"), 3), I("z")), 2)],
        )
        opts = {
            "fully_explicit": True,
            "exact_newton": exact,
            "newton_iterations": iters,
        }
        with warnings.catch_warnings():
            warnings.simplefilter("error", NewtonConvergenceWarning)
            ocp = FlatOcp(desc, opts)
        self.assertAlmostEqual(float(cs.evalf(ocp.dep[0])), 1, places=6)

    def test_make_explicit__warns__if_newton_does_not_converge(self):
        desc = model(
            [{"name": "z", "start": 0.9}],
            dynamic=[("Sub", ("Add", ("Pow", I("z"), 3), I("z")), 2)],
        )
        with self.assertWarns(NewtonConvergenceWarning):
            FlatOcp(desc, {"fully_explicit": True, "newton_iterations": 1})

    def test_make_explicit__keeps_non_square_blocks_implicit(self):
        desc = model(
            ["x", "z", "w", "v"],
            dynamic=[
                ("Sub", I("x"), 1),
                ("Sub", ("Mul", 2, I("x")), 2),
                ("Sub", ("Add", I("z"), I("w")), I("x")),
                ("Sub", I("v"), I("x")),
            ],
        )
        ocp = FlatOcp(desc, {"fully_explicit": True})
        self.assertListEqual([v.name for v in ocp.y], ["v"])
        self.assertSetEqual({v.name for v in ocp.x}, {"x", "z", "w"})
        self.assertEqual(len(ocp.dae), 3)

    def test_make_explicit__keeps_singular_rows_and_columns_implicit(self):
        # the constant equation and x1 are structurally singular, and share the block
        # of x0 after the decomposition
        desc = model(["x0", "x1"], dynamic=[("Sub", I("x0"), 2), 5])
        with self.assertWarns(StructuralDegeneracyWarning):
            ocp = FlatOcp(desc, {"fully_explicit": True})
        self.assertListEqual([v.name for v in ocp.y], ["x0"])
        self.assertAlmostEqual(float(cs.evalf(ocp.dep[0])), 2)
        self.assertListEqual([v.name for v in ocp.x], ["x1"])
        self.assertEqual(len(ocp.dae), 1)
        self.assertEqual(float(cs.evalf(ocp.dae[0])), 5)

    def test_make_explicit__solves_only_the_welldetermined_part(self):
        desc = model(["x0", "x1"], dynamic=[("Sub", I("x0"), 2), 5])
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", StructuralDegeneracyWarning)
            ocp = FlatOcp(desc, {"sort_blt": True})
        blt = ocp.blt
        wrows, wcols = blt.coarse("welldetermined")
        solved = []
        for k in range(blt.nb):
            rows, cols = blt.welldetermined_block(k)
            self.assertTrue(set(rows) <= set(wrows) and set(cols) <= set(wcols))
            solved.extend(ocp.x[j].name for j in cols)
        self.assertListEqual(solved, ["x0"])
        ocp.make_explicit()
        for e in ocp.dep:
            self.assertTrue(np.isfinite(float(cs.evalf(e))))

    def test_separate_quadratures(self):
        desc = model(
            ["x", "c"],
            dynamic=[
                ("Add", D("x"), I("x")),
                ("Sub", D("c"), ("Mul", I("x"), I("x"))),
            ],
            mayer=[I("c")],
        )
        ocp = FlatOcp(desc, {"fully_explicit": True, "separate_quadratures": True})
        self.assertListEqual([v.name for v in ocp.xd], ["x"])
        self.assertListEqual([v.name for v in ocp.q], ["c"])
        self.assertIs(ocp.variable("c").role, Role.QUADRATURE)
        self.assertAlmostEqual(evaluate(ocp, ocp.quad[0], x=3), 9)
        ocp.make_algebraic("x")
        self.assertListEqual([v.name for v in ocp.xa], ["x"])
        self.assertAlmostEqual(evaluate(ocp, ocp.alg[0], x=3), -3)


class TestFlatOcp(unittest.TestCase):
    def test_init__validates_options(self):
        with self.assertRaises(ValueError):
            FlatOcp(model([]), {"a_random_option": True})
        with self.assertRaises(TypeError):
            FlatOcp(model([]), {"newton_iterations": 1.5})
        with self.assertRaises(ConfigurationError):
            FlatOcp(model([]), {"newton_iterations": 0})
        with self.assertRaises(PluginNotFoundError):
            FlatOcp(model([]), {"linear_solver": "a_random_solver"})
        ocp = FlatOcp(model([]))
        self.assertSetEqual(set(ocp.opts), set(OCP_OPTIONS))

    def test_init__accepts_model_descriptions(self):
        desc = ModelDescription(
            variables=[RawVariable("x")], dynamic=[("Add", D("x"), 1)]
        )
        ocp = FlatOcp(desc, name="model")
        self.assertEqual(ocp.name, "model")
        self.assertEqual(ocp.dimensions["x"], 1)

    def test_str_and_repr(self):
        ocp = FlatOcp(TestStructure.DESC, {"fully_explicit": True})
        text = str(ocp)
        self.assertIn("Implicit dynamic equations", text)
        self.assertIn("Dependent equations", text)
        self.assertIn("y = [x0, x1]", text)
        self.assertIn("y=2", repr(ocp))

    def test_verbose__logs_stages(self):
        with self.assertLogs("csocp", level="INFO") as cm:
            FlatOcp(TestStructure.DESC, {"verbose": True, "fully_explicit": True})
        output = "\n".join(cm.output)
        self.assertIn("Parsing model", output)
        self.assertIn("Making explicit", output)


if __name__ == "__main__":
    unittest.main()
