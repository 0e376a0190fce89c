from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import pytest
from helpers import dataclasses_are_equal

from fusbeam.axis import Axis
from fusbeam.bf.apod_methods import MaxAngle
from fusbeam.bf.delay_methods import Direct, Raytraced
from fusbeam.bf.focal_patterns import SinglePoint, Wheel
from fusbeam.geo import Point
from fusbeam.plan import BeamformingPlan, Solution
from fusbeam.seg import MATERIALS, TISSUE
from fusbeam.util.errors import MaterialNotFound
from fusbeam.xdc import Transducer


@pytest.fixture()
def example_plan() -> BeamformingPlan:
    return BeamformingPlan(id="example_plan",
                           name="Example Plan",
                           description="Wheel pattern through water",
                           delay_method=Direct(c0=1500.),
                           apod_method=MaxAngle(max_angle=45.),
                           focal_pattern=Wheel(center=True, num_spokes=4, spoke_radius=2., units="mm"))

@pytest.fixture()
def example_transducer() -> Transducer:
    return Transducer.gen_matrix_array(nx=4, ny=2, pitch=4, units="mm", id="example_transducer", name="Example Transducer")

@pytest.fixture()
def example_target() -> Point:
    return Point(id="target", position=[1., 2., 40.], units="mm")

@pytest.fixture()
def example_coords():
    return [Axis(values=np.linspace(-20, 20, 5), id="x", units="mm"),
            Axis(values=np.linspace(-20, 20, 5), id="y", units="mm"),
            Axis(values=np.linspace(-5, 60, 14), id="z", units="mm")]

def test_default_plan():
    plan = BeamformingPlan()
    assert isinstance(plan.delay_method, Direct)
    assert isinstance(plan.focal_pattern, SinglePoint)
    assert plan.ref_material == "water"
    assert plan.materials == MATERIALS
    assert plan.materials is not MATERIALS

def test_plan_materials_are_independent():
    plan = BeamformingPlan()
    water_speed = MATERIALS["water"].sound_speed
    plan.materials["water"].sound_speed = 1600.
    assert MATERIALS["water"].sound_speed == water_speed
    assert BeamformingPlan().materials["water"].sound_speed == water_speed

def test_unknown_reference_material():
    with pytest.raises(MaterialNotFound):
        BeamformingPlan(ref_material="unobtainium")
    with pytest.raises(TypeError):
        BeamformingPlan(materials={"water": {"sound_speed": 1500.}})

def test_get_ref_volumes(example_plan: BeamformingPlan, example_coords):
    volumes = example_plan.get_ref_volumes(example_coords)
    assert [vol.id for vol in volumes] == ["sound_speed", "density", "attenuation"]
    sound_speed = volumes[0]
    assert sound_speed.shape == (5, 5, 14)
    assert sound_speed.units == "m/s"
    np.testing.assert_equal(sound_speed.data, 1500.)
    assert sound_speed.attrs["ref_material"] == MATERIALS["water"]
    assert sound_speed.attrs["ref_value"] == 1500.
    tissue_volumes = example_plan.get_ref_volumes(example_coords, material_id="tissue")
    np.testing.assert_equal(tissue_volumes[0].data, TISSUE.sound_speed)
    with pytest.raises(MaterialNotFound):
        example_plan.get_ref_volumes(example_coords, material_id="unobtainium")

def test_calc_solution(example_plan: BeamformingPlan, example_transducer: Transducer, example_target: Point, caplog):
    with caplog.at_level(logging.INFO):
        solution = example_plan.calc_solution(example_transducer, example_target)
    assert isinstance(solution, Solution)
    assert solution.delays.shape == (5, 8)
    assert solution.apodizations.shape == (5, 8)
    assert solution.num_foci() == 5
    assert solution.id == "example_plan_example_transducer"
    assert solution.name == "Example Plan (Example Transducer)"
    assert solution.plan_id == "example_plan"
    assert np.all(solution.delays.min(axis=1) == 0.)
    np.testing.assert_equal(solution.apodizations, 1.)
    assert caplog.text.count("Beamform for focus") == 5
    for focus, delays in zip(solution.foci, solution.delays):
        np.testing.assert_allclose(delays, example_plan.delay_method.calc_delays(example_transducer, focus))

def test_calc_solution_with_params(example_plan: BeamformingPlan, example_transducer: Transducer, example_target: Point, example_coords):
    params = example_plan.get_ref_volumes(example_coords)
    plan = BeamformingPlan(delay_method=Raytraced(interp_method="linear", interp_spacing=5e-4))
    solution = plan.calc_solution(example_transducer, example_target, params=params, solution_id="raytraced")
    assert solution.id == "raytraced"
    np.testing.assert_allclose(solution.delays[0],
                               Direct(c0=1500.).calc_delays(example_transducer, example_target),
                               rtol=1e-9, atol=1e-15)

def test_plan_to_table(example_plan: BeamformingPlan):
    table = example_plan.to_table()
    assert isinstance(table, pd.DataFrame)
    assert list(table.columns) == ["Category", "Name", "Value", "Unit"]
    assert set(table["Category"]) == {"Delay Method", "Apodization Method", "Focal Pattern"}

@pytest.mark.parametrize("compact_representation", [True, False])
def test_serialize_deserialize_plan(example_plan: BeamformingPlan, compact_representation: bool):
    reconstructed_plan = BeamformingPlan.from_json(example_plan.to_json(compact_representation))
    assert dataclasses_are_equal(example_plan, reconstructed_plan)

def test_plan_file_round_trip(example_plan: BeamformingPlan, tmp_path):
    filename = tmp_path / "plans" / "example_plan.json"
    example_plan.to_file(filename)
    assert dataclasses_are_equal(example_plan, BeamformingPlan.from_file(filename))

def test_plan_from_minimal_dict():
    plan = BeamformingPlan.from_dict({"id": "minimal"})
    assert plan.delay_method == Direct()
    assert isinstance(plan.focal_pattern, SinglePoint)
