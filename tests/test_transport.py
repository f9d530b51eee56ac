import pytest
import numpy as np

from tinero.eroder import SedTransPwrLaw
from tinero.eroder import SedTransPwrLawMulti
from tinero.eroder import SedTransWilcock
from tinero.eroder import SedTransMineTailings
from tinero.eroder import BedErodePwrLaw
from tinero.eroder import BedErodePwrLawMulti
from tinero.eroder import buildBedErode
from tinero.eroder import buildSedTrans

powerlaw = {"transport": {"kf": 0.01, "kt": 1.0, "mf": 0.0, "nf": 1.0}}

sandgravel = {
    "domain": {"numgrn": 2},
    "grains": {"diameters": [0.001, 0.01], "hidingexp": 0.5},
    "transport": {"kf": 0.01, "kt": 1000.0, "mf": 0.0, "nf": 1.0},
}


def _mesh(chain, slope=0.1, discharge=1.0e9, **kwargs):
    mesh = chain([slope * 10.0, 0.0], spacing=10.0, **kwargs)
    mesh.discharge[:] = discharge

    return mesh


def test_power_law_capacity(chain):
    law = SedTransPwrLaw(powerlaw)
    mesh = _mesh(chain, numg=2, regdep=0.5, brgrade=[0.2, 0.8])

    cap = law.transCapacity(mesh, 0)

    assert cap == pytest.approx(0.01 * 0.1)
    assert mesh.Qs[0] == pytest.approx(cap)
    assert mesh.QsM[0] == pytest.approx([0.2 * cap, 0.8 * cap])


def test_power_law_weighted_accumulates(chain):
    law = SedTransPwrLaw(powerlaw)
    mesh = _mesh(chain)

    mesh.QsM[0] = 0.0
    law.transCapacityWeighted(mesh, 0, 0, 0.25)
    law.transCapacityWeighted(mesh, 0, 0, 0.75)

    assert mesh.Qs[0] == pytest.approx(0.01 * 0.1)
    assert mesh.Qs[0] == pytest.approx(mesh.QsM[0].sum())


def test_power_law_threshold_and_flood(chain):
    law = SedTransPwrLaw(
        {"transport": dict(powerlaw["transport"], taucd=1.0)}
    )
    assert law.transCapacity(_mesh(chain), 0) == 0.0

    law = SedTransPwrLaw(powerlaw)
    mesh = _mesh(chain)
    mesh.flood[0] = True
    assert law.transCapacity(mesh, 0) == 0.0


def test_power_law_negative_slope_is_fatal(chain):
    law = SedTransPwrLaw(powerlaw)
    mesh = chain([0.0, 1.0])

    with pytest.raises(ValueError):
        law.transCapacity(mesh, 0)


def test_multi_size_hiding(chain):
    law = SedTransPwrLawMulti(sandgravel)
    mesh = _mesh(chain, numg=2, regdep=0.5, brgrade=[0.5, 0.5])

    cap = law.transCapacity(mesh, 0)

    assert cap > 0.0
    assert mesh.Qs[0] == pytest.approx(mesh.QsM[0].sum())
    # Finer grains are more mobile
    assert mesh.QsM[0, 0] > mesh.QsM[0, 1]

    # Hiding raises the coarse threshold less than the fine one
    d50 = 0.0055
    tauc = law.taucref * (law.grndiam / d50) ** (-0.5)
    assert tauc[0] > law.taucref[0]
    assert tauc[1] < law.taucref[1]


def test_multi_size_flooded_node_uses_null_slope(chain):
    law = SedTransPwrLawMulti(sandgravel)
    mesh = _mesh(chain, numg=2, regdep=0.5, brgrade=[0.5, 0.5])
    mesh.flood[0] = True

    assert law.transCapacity(mesh, 0) == 0.0
    assert mesh.tau[0] == 0.0


def test_multi_size_class_limit():
    params = {
        "domain": {"numgrn": 12},
        "grains": {"diameters": [0.001 * (k + 1) for k in range(12)], "hidingexp": 0.5},
        "transport": sandgravel["transport"],
    }

    with pytest.warns(UserWarning):
        law = SedTransPwrLawMulti(params)
    assert law.numg == 9
    assert len(law.grndiam) == 9


def test_fractional_critical_shear_continuity():
    law = SedTransWilcock(sandgravel)

    for p in [0.10, 0.40]:
        below = law.critShear(p - 1.0e-9)
        above = law.critShear(p + 1.0e-9)
        assert below[0] == pytest.approx(above[0], rel=1.0e-6)
        assert below[1] == pytest.approx(above[1], rel=1.0e-6)

    assert law.critShear(0.05) == (law.lowtaucs, law.lowtaucg)
    assert law.critShear(0.9) == (law.hightaucs, law.hightaucg)


def test_fractional_laws_need_two_sizes():
    params = dict(sandgravel, domain={"numgrn": 1})

    with pytest.raises(ValueError):
        SedTransWilcock(params)
    with pytest.raises(ValueError):
        SedTransMineTailings(params)


def test_wilcock_capacity(chain):
    law = SedTransWilcock(sandgravel)

    thin = _mesh(chain, numg=2, regdep=0.5, brgrade=[0.5, 0.5])
    thick = _mesh(chain, numg=2, regdep=1.0, brgrade=[0.5, 0.5])
    qthin = law.transCapacity(thin, 0)
    qthick = law.transCapacity(thick, 0)

    assert qthin > 0.0
    assert thin.Qs[0] == pytest.approx(thin.QsM[0].sum())
    # Capacity scales with the active layer thickness
    assert qthick == pytest.approx(2.0 * qthin)

    thin.QsM[0] = 0.0
    law.transCapacityWeighted(thin, 0, 0, 0.5)
    assert thin.Qs[0] == pytest.approx(thin.QsM[0].sum())
    assert thin.Qs[0] > 0.0


def test_mine_tailings_capacity(chain):
    law = SedTransMineTailings(sandgravel)
    mesh = _mesh(chain, numg=2, regdep=0.5, brgrade=[0.5, 0.5])

    cap = law.transCapacity(mesh, 0)
    assert cap > 0.0
    assert mesh.Qs[0] == pytest.approx(mesh.QsM[0].sum())

    mesh.QsM[0] = 0.0
    half = law.transCapacityWeighted(mesh, 0, 0, 0.5)
    assert half == pytest.approx(0.5 * cap)


def test_fractional_negative_slope_gives_zero(chain):
    for law in [SedTransWilcock(sandgravel), SedTransMineTailings(sandgravel)]:
        mesh = chain([0.0, 1.0], numg=2, regdep=0.5)
        mesh.Qs[0] = 5.0
        mesh.QsM[0] = 2.5

        assert law.transCapacity(mesh, 0) == 0.0
        assert mesh.Qs[0] == 0.0
        assert law.transCapacityWeighted(mesh, 0, 0, 1.0) == 0.0
        assert mesh.QsM[0] == pytest.approx([0.0, 0.0])


def test_law_factory():
    params = dict(sandgravel)
    params["detachment"] = {"kb": 1.0, "kt": 1.0, "mb": 0.5, "nb": 1.0}

    assert isinstance(buildBedErode(params), BedErodePwrLaw)
    assert isinstance(buildSedTrans(params), SedTransPwrLaw)

    params["erosion"] = {
        "detachment": "powerlawmulti",
        "transport": "wilcock",
    }
    assert isinstance(buildBedErode(params), BedErodePwrLawMulti)
    assert isinstance(buildSedTrans(params), SedTransWilcock)

    params["erosion"] = {"transport": "unknown"}
    with pytest.raises(ValueError):
        buildSedTrans(params)


def test_tiny_discharge_gives_small_capacity(chain):
    law = SedTransPwrLaw(
        {"transport": {"kf": 0.01, "kt": 1.0, "mf": 0.5, "nf": 1.0}}
    )
    small = law.transCapacity(_mesh(chain, discharge=1.0), 0)
    large = law.transCapacity(_mesh(chain, discharge=1.0e6), 0)

    assert 0.0 < small < large
    assert np.isfinite(large)
