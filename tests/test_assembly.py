# tests/test_assembly.py

"""
Model assembly tests on the two-technology scenario.

The scenario has one region, two years, two time slices, and two
technologies: GAS produces ELC from NGS, IMP produces NGS.
"""

import pytest
from pyomo.repn import generate_standard_repn

from pynemo.constants import TRANSMISSION_VARSTOSAVE
from pynemo.model import CATALOGUE


# ========== Variables ==========

class TestVariables:
    """Tests for variable family declaration."""

    def test_restricted_domain(self, base_db, assemble):
        """Production by technology only spans producing technology and fuel pairs."""
        ctx, adapter = assemble(base_db)
        assert adapter.variable_size("vrateofproductionbytechnologynn") == 8
        assert set(ctx.indices["vrateofproductionbytechnologynn"][1]) == {("R1", "DAY"), ("R1", "NIGHT")}

    def test_unrestricted_domain(self, base_db, assemble):
        """Without restriction the family spans every dimension combination."""
        _, adapter = assemble(base_db, restrictvars=False)
        assert adapter.variable_size("vrateofproductionbytechnologynn") == 16

    def test_no_transmission_families(self, base_db, assemble):
        _, adapter = assemble(base_db)
        names = adapter.variable_names()
        assert not any(name.endswith("nodal") for name in names)
        assert not any(adapter.has_variable(name) for name in TRANSMISSION_VARSTOSAVE)
        assert not adapter.has_variable("vvoltageangle")

    def test_requested_families(self, base_db, assemble):
        """Optional families exist only when they are persisted."""
        _, default = assemble(base_db)
        assert not default.has_variable("vrateofdemandnn")
        assert not default.has_variable("vmodelperiodcostbyregion")
        _, requested = assemble(base_db, varstosave=["vrateofdemandnn", "vmodelperiodcostbyregion"])
        assert requested.has_variable("vrateofdemandnn")
        assert requested.variable_size("vmodelperiodcostbyregion") == 1

    def test_catalogue_names_unique(self):
        names = [spec.name for spec in CATALOGUE]
        assert len(names) == len(set(names))


# ========== Constraints ==========

class TestConstraints:
    """Tests for constraint family instances."""

    def test_capital_investment(self, base_db, assemble):
        """CC1 has one instance per region, technology and year."""
        _, adapter = assemble(base_db)
        assert adapter.constraint_count("CC1_UndiscountedCapitalInvestment") == 4

    def test_capital_investment_coefficients(self, capital_db, assemble):
        """Each year's CC1 instance prices new capacity at that year's capital cost."""
        _, adapter = assemble(capital_db)
        vnew, vcapital = adapter.variable("vnewcapacity"), adapter.variable("vcapitalinvestment")
        costs = {}
        for con in adapter.model.component("CC1_UndiscountedCapitalInvestment").values():
            repn = generate_standard_repn(con.body)
            coefs = {id(var): coef for var, coef in zip(repn.linear_vars, repn.linear_coefs)}
            for y in ("2020", "2021"):
                if id(vnew["R1", "T1", y]) in coefs:
                    costs[y] = -coefs[id(vnew["R1", "T1", y])] / coefs[id(vcapital["R1", "T1", y])]
        assert costs == {"2020": pytest.approx(100.0), "2021": pytest.approx(90.0)}

    def test_accumulated_capacity(self, base_db, assemble):
        """CAa1 consolidates vintages into one instance per region, technology and year."""
        _, adapter = assemble(base_db)
        assert adapter.constraint_count("CAa1_TotalNewCapacity") == 4

    def test_balance_families(self, base_db, assemble):
        _, adapter = assemble(base_db)
        # One demand instance per time slice and year
        assert adapter.constraint_count("EBa9_EnergyBalanceEachTS3") == 4
        # Both fuels in both time slices and years
        assert adapter.constraint_count("EBa11_EnergyBalanceEachTS5") == 8
        assert adapter.constraint_count("EBa5_RateOfFuelUse2") == 4

    def test_no_transmission_constraints(self, base_db, assemble):
        ctx, adapter = assemble(base_db)
        assert not any("Tr_" in family for family in adapter.constraint_families())
        assert not any("Tr_" in family for family in ctx.created_families)

    def test_no_storage_constraints(self, base_db, assemble):
        _, adapter = assemble(base_db)
        assert adapter.constraint_count("NS1_RateOfStorageCharge") == 0
        assert adapter.constraint_count("NS5_StorageLevelTimesliceEnd") == 0

    def test_requested_demand_rate(self, base_db, assemble):
        _, default = assemble(base_db)
        assert default.constraint_count("EQ_SpecifiedDemand") == 0
        _, requested = assemble(base_db, varstosave=["vrateofdemandnn"])
        assert requested.constraint_count("EQ_SpecifiedDemand") == 4

    def test_annual_activity_when_requested(self, base_db, assemble):
        _, default = assemble(base_db)
        assert not default.has_variable("vtotaltechnologyannualactivity")
        _, requested = assemble(base_db, varstosave=["vtotaltechnologyannualactivity"])
        assert requested.constraint_count("AAC1_TotalAnnualTechnologyActivity") == 4

    def test_model_period_activity_when_requested(self, base_db, assemble):
        """Requesting model-period activity also builds the annual activity it sums."""
        _, adapter = assemble(base_db, varstosave=["vtotaltechnologymodelperiodactivity"])
        assert adapter.has_variable("vtotaltechnologyannualactivity")
        assert adapter.constraint_count("AAC1_TotalAnnualTechnologyActivity") == 4
        assert adapter.constraint_count("TAC1_TotalModelHorizonTechnologyActivity") == 2

    def test_created_families_logged(self, base_db, assemble, caplog):
        with caplog.at_level("INFO", logger="pynemo"):
            ctx, _ = assemble(base_db)
        assert "CC1_UndiscountedCapitalInvestment" in ctx.created_families
        assert "Created constraint CC1_UndiscountedCapitalInvestment." in caplog.text
        assert "Defined model objective." in caplog.text

    def test_objective(self, base_db, assemble):
        _, adapter = assemble(base_db)
        assert adapter.model.component("objective") is not None


# ========== Custom constraints ==========

class TestCustomConstraints:
    """Tests for the customconstraints include."""

    def test_custom_family_added(self, base_db, assemble, tmp_path):
        include = tmp_path / "custom.py"
        include.write_text(
            "def add_constraints(ctx):\n"
            "    vnew = ctx.v('vnewcapacity')\n"
            "    ctx.constrain('Custom_GasLimit', vnew['R1', 'GAS', '2020'], '<=', 100)\n"
        )
        _, adapter = assemble(base_db, customconstraints=str(include))
        assert adapter.constraint_count("Custom_GasLimit") == 1

    def test_failing_include_skipped(self, base_db, assemble, tmp_path):
        include = tmp_path / "custom.py"
        include.write_text("def add_constraints(ctx):\n    ctx.v('vnosuchvariable')\n")
        _, adapter = assemble(base_db, customconstraints=str(include))
        assert adapter.model.component("objective") is not None
