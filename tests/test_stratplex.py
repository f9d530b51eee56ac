import pytest
import numpy as np

from tinero.sed.stratplex import Layer
from tinero.sed.stratplex import LayerStack
from tinero.sed.stratplex import buildColumn
from tinero.sed.stratplex import BEDROCK_DEPTH


def test_layer_depth_and_fractions():
    layer = Layer([0.2, 0.6], 1.0e-3, 1)

    assert layer.depth == pytest.approx(0.8)
    assert layer.fractions() == pytest.approx([0.25, 0.75])
    assert Layer([0.0, 0.0], 1.0e-3, 1).fractions() == pytest.approx([0.0, 0.0])


def test_column_initialisation():
    column = buildColumn(2, 1.0, 0.5, 1.0e-4, 1.0e-3, [0.4, 0.6])

    assert column.getNumLayer() == 2
    assert column.getLayerSed(0) == 1
    assert column.getLayerSed(1) == 0
    assert column.getLayerDepth(0) == pytest.approx(0.5)
    assert column.getLayerDepth(1) == pytest.approx(BEDROCK_DEPTH)
    assert column.getLayerErody(0) == 1.0e-3
    assert column.getLayerErody(1) == 1.0e-4
    assert column.alluvThickness() == pytest.approx(0.5)
    assert not column.onBedrock()
    # Missing layers are reported as bedrock
    assert column.getLayerSed(5) == 0


def test_deposition_on_bedrock_creates_sediment_layer():
    column = buildColumn(2, 1.0, 0.0, 1.0e-4, 1.0e-3, [0.5, 0.5])
    assert column.onBedrock()

    ret = column.erodep(0, [0.2, 0.1], 5.0)

    assert ret == pytest.approx([0.2, 0.1])
    assert column.getNumLayer() == 2
    assert column.getLayerSed(0) == 1
    assert column.getLayerErody(0) == 1.0e-3
    assert column[0].ctime == 5.0
    assert column.getLayerDepth(0) == pytest.approx(0.3)
    assert column.getLayerFractions(0).sum() == pytest.approx(1.0)


def test_erosion_limited_by_available_material():
    column = buildColumn(2, 1.0, 0.0, 1.0e-4, 1.0e-3, [0.5, 0.5])
    column.erodep(0, [0.2, 0.1], 5.0)

    ret = column.erodep(0, [-0.5, -0.05], 6.0)

    assert ret == pytest.approx([-0.2, -0.05])
    assert column.getLayerDepth(0) == pytest.approx(0.05)
    assert column.getLayerDgrade(0, 0) == 0.0
    assert column[0].rtime == 6.0
    assert column.getLayerFractions(0) == pytest.approx([0.0, 1.0])


def test_zero_request_is_a_no_op():
    column = buildColumn(2, 1.0, 0.5, 1.0e-4, 1.0e-3, [0.4, 0.6])
    before = [column.getLayerDepth(k) for k in range(column.getNumLayer())]

    ret = column.erodep(0, [0.0, 0.0], 3.0)

    assert ret == pytest.approx([0.0, 0.0])
    assert [column.getLayerDepth(k) for k in range(column.getNumLayer())] == before
    assert column[0].rtime == 0.0


def test_emptied_layer_is_removed():
    column = buildColumn(1, 1.0, 0.5, 1.0e-4, 1.0e-3, [1.0])

    ret = column.erodep(0, [-0.8], 2.0)

    assert ret == pytest.approx([-0.5])
    assert column.getNumLayer() == 1
    assert column.onBedrock()


def test_active_layer_split_and_replenished():
    column = buildColumn(1, 1.0, 0.5, 1.0e-4, 1.0e-3, [1.0])

    column.erodep(0, [0.8], 1.0)
    assert column.getNumLayer() == 3
    assert column.getLayerDepth(0) == pytest.approx(1.0)
    assert column.getLayerDepth(1) == pytest.approx(0.3)
    assert column.getLayerSed(1) == 1
    assert column.alluvThickness() == pytest.approx(1.3)

    column.erodep(0, [-0.5], 2.0)
    assert column.getNumLayer() == 2
    assert column.getLayerDepth(0) == pytest.approx(0.8)
    assert column.alluvThickness() == pytest.approx(0.8)


def test_total_erosion_walks_down_the_column():
    column = buildColumn(2, 1.0, 0.5, 1.0e-4, 1.0e-3, [0.4, 0.6])

    ret = column.erodepTotal(-0.7, 4.0)

    assert ret.sum() == pytest.approx(-0.7)
    assert column.onBedrock()
    assert column.alluvThickness() == 0.0
    assert column.getLayerDepth(0) == pytest.approx(BEDROCK_DEPTH - 0.2)


def test_total_deposition_follows_surface_grading():
    column = buildColumn(2, 1.0, 0.5, 1.0e-4, 1.0e-3, [0.4, 0.6])

    ret = column.erodepTotal(0.25, 4.0)

    assert ret == pytest.approx([0.1, 0.15])
    assert column.getLayerFractions(0) == pytest.approx([0.4, 0.6])
    assert column.getLayerFractions(0).sum() == pytest.approx(1.0)


def test_grain_fractions_sum_to_one():
    column = buildColumn(3, 0.5, 0.3, 1.0e-4, 1.0e-3, [0.2, 0.3, 0.5])
    rng = np.random.default_rng(7)

    for k in range(50):
        dz = rng.uniform(-0.2, 0.2, 3)
        column.erodep(0, dz, float(k))
        for lyr in range(column.getNumLayer()):
            assert column.getLayerDepth(lyr) >= 0.0
            assert column.getLayerFractions(lyr).sum() == pytest.approx(1.0)
        assert column.getLayerDepth(0) <= 0.5 + 1.0e-12 or column.onBedrock()


def test_exposure_time():
    column = LayerStack(1, 1.0, 1.0e-3, [Layer([1.0], 1.0e-4, 0)])

    column.addExposureTime(10.0)
    column.addExposureTime(5.0)

    assert column[0].etime == 15.0
