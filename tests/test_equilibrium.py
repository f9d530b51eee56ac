import pytest

from tinero.eroder import EquilibCheck


def _track(chain, samples, longTime=0.0):
    mesh = chain([0.0, 0.0], area=1.0)
    eq = EquilibCheck(mesh, longTime)
    for time, elev in samples:
        mesh.elev[0] = elev
        eq.findLongTermChngRate(time)

    return eq


def test_short_and_long_term_rates(chain):
    eq = _track(chain, [(0.0, 10.0), (1.0, 11.0), (2.0, 13.5)], longTime=2.0)

    assert eq.getShortRate() == pytest.approx(2.5)
    assert eq.longRate == pytest.approx(1.75)


def test_long_rate_requery_without_new_sample(chain):
    eq = _track(chain, [(0.0, 10.0), (1.0, 11.0), (2.0, 13.5)], longTime=2.0)

    assert eq.getLongRate(2.0) == pytest.approx(1.75)
    # Earliest sample inside a window of 1 is the one at t=1
    assert eq.getLongRate(1.0) == pytest.approx(2.5)
    # Only the latest sample is inside the window, the previous one is used
    assert eq.getLongRate(0.5) == pytest.approx(2.5)
    # A null window gives the short term rate
    assert eq.getLongRate(0.0) == pytest.approx(2.5)
    assert len(eq.massList) == 3


def test_first_sample_rate(chain):
    eq = _track(chain, [(4.0, 10.0)], longTime=2.0)
    assert eq.getShortRate() == pytest.approx(2.5)
    assert eq.longRate == pytest.approx(2.5)

    eq = _track(chain, [(0.0, 10.0)])
    assert eq.getShortRate() == 0.0


def test_non_increasing_time_is_fatal(chain):
    eq = _track(chain, [(1.0, 10.0)])

    with pytest.raises(ValueError):
        eq.findIterChngRate(1.0)


def test_negative_window_is_clamped(chain):
    mesh = chain([0.0, 0.0])
    eq = EquilibCheck(mesh, -5.0)
    assert eq.getLongTime() == 0.0

    eq.setLongTime(-1.0)
    assert eq.getLongTime() == 0.0


def test_mass_list_dataframe(chain):
    eq = _track(chain, [(0.0, 10.0), (1.0, 11.0)])
    df = eq.massList

    assert list(df.columns) == ["time", "elev"]
    assert df["elev"].tolist() == [10.0, 11.0]


def test_missing_mesh():
    with pytest.raises(ValueError):
        EquilibCheck(None)
