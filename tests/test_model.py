import pytest
import numpy as np
import pandas as pd

from tinero.model import Model
from tinero.tools import Uplift


def _writeMesh(path):
    n = 4
    np.savez_compressed(
        path,
        elev=np.array([3.0, 2.0, 1.0, 0.0]),
        area=np.full(n, 100.0),
        rcv=np.array([1, 2, 3, -1]),
        flowlen=np.full(n, 10.0),
        edges=np.array([[0, 1], [1, 2], [2, 3]]),
        edgelen=np.full(n - 1, 10.0),
        vedgelen=np.full(n - 1, 10.0),
    )

    return


def _writeInput(tmp_path, extra=""):
    _writeMesh(str(tmp_path / "mesh.npz"))
    content = """name: Chain test

domain:
    npdata: '{}'
    numgrn: 1
    erody: 1.e-2

time:
    start: 0.
    end: 1000.
    dt: 250.

erosion:
    method: detachlim

detachment:
    kb: 1.
    kt: 1.
    mb: 0.5
    nb: 1.

hydraulics:
    rain: 1.
    geometry: False

diffusion:
    kd: 0.01

uplift:
    rate: 1.e-4

equilibrium:
    longtime: 500.
""".format(
        str(tmp_path / "mesh")
    )
    filename = tmp_path / "input.yml"
    filename.write_text(content + extra)

    return str(filename)


def test_model_run(tmp_path):
    model = Model(_writeInput(tmp_path), verbose=False)

    assert model.mesh.npoints == 4
    assert list(model.mesh.activeIDs) == [0, 1, 2]
    assert model.mesh.discharge[:3] == pytest.approx([100.0, 200.0, 300.0])

    model.runProcesses()

    assert model.tNow == pytest.approx(1000.0)
    assert len(model.eqCheck.massList) == 4
    assert model.mesh.elev[3] == 0.0
    assert np.all(np.diff(model.mesh.elev) <= 0.0)
    assert model.mesh.elev[0] < 3.0 + 1000.0 * 1.0e-4
    assert model.mesh.layers[0][0].etime == pytest.approx(1000.0)


def test_model_last_step_is_shortened(tmp_path):
    filename = _writeInput(tmp_path)
    model = Model(filename, verbose=False)
    model.tEnd = 900.0

    model.runProcesses()

    assert model.tNow == pytest.approx(900.0)
    assert model.eqCheck.massList["time"].tolist() == pytest.approx(
        [250.0, 500.0, 750.0, 900.0]
    )


def test_model_mesh_refinement(tmp_path):
    calls = []

    def refiner(mesh, nid, time):
        calls.append(nid)

    filename = _writeInput(tmp_path, "\nadapt:\n    maxflux: 1.e-12\n")
    model = Model(filename, verbose=False, refiner=refiner)
    model.runProcesses()

    assert len(calls) > 0
    assert model.mesh.meshVersion == len(calls)


def test_missing_input_file(tmp_path):
    with pytest.raises(IOError):
        Model(str(tmp_path / "missing.yml"), verbose=False)


def test_missing_mesh_dataset(tmp_path):
    filename = tmp_path / "input.yml"
    filename.write_text(
        "domain:\n    npdata: '{}'\ntime:\n    start: 0.\n    end: 1.\n    dt: 1.\n".format(
            str(tmp_path / "none")
        )
    )

    with pytest.raises(IOError):
        Model(str(filename), verbose=False)


@pytest.mark.parametrize(
    "extra,error",
    [
        ("time:\n    start: 10.\n    end: 1.\n    dt: 1.\n", ValueError),
        ("time:\n    start: 0.\n    end: 10.\n    dt: 0.\n", ValueError),
        ("time:\n    start: 0.\n    end: 10.\n", KeyError),
        ("time:\n    start: 0.\n    end: 10.\n    dt: 1.\nerosion:\n    method: glacial\n", ValueError),
        ("time:\n    start: 0.\n    end: 10.\n    dt: 1.\ndiffusion:\n    nodepo: True\n", ValueError),
    ],
)
def test_invalid_declarations(tmp_path, extra, error):
    _writeMesh(str(tmp_path / "mesh.npz"))
    filename = tmp_path / "input.yml"
    filename.write_text(
        "domain:\n    npdata: '{}'\n".format(str(tmp_path / "mesh")) + extra
    )

    with pytest.raises(error):
        Model(str(filename), verbose=False)


def test_bedrock_grading_declaration(tmp_path):
    _writeMesh(str(tmp_path / "mesh.npz"))
    filename = tmp_path / "input.yml"
    filename.write_text(
        "domain:\n    npdata: '{}'\n    numgrn: 2\n    brgrade: [0.5, 0.2]\n"
        "time:\n    start: 0.\n    end: 1.\n    dt: 1.\n".format(str(tmp_path / "mesh"))
    )

    with pytest.raises(ValueError):
        Model(str(filename), verbose=False)


def test_uplift_curve(tmp_path):
    curve = tmp_path / "uplift.csv"
    curve.write_text("0. 0.\n100. 1.e-3\n")
    filename = _writeInput(tmp_path)
    content = open(filename).read().replace(
        "rate: 1.e-4", "curve: '{}'".format(str(curve))
    )
    with open(filename, "w") as f:
        f.write(content)

    model = Model(filename, verbose=False)

    assert isinstance(model.upliftCurve, pd.DataFrame)
    model.uplift.setTime(50.0)
    assert model.uplift.getRate() == pytest.approx(5.0e-4)
    model.uplift.setTime(500.0)
    assert model.uplift.getRate() == pytest.approx(1.0e-3)
    model.uplift.setTime(-10.0)
    assert model.uplift.getRate() == pytest.approx(0.0)


def test_uplift_only_moves_active_nodes(chain):
    mesh = chain([2.0, 1.0, 0.0])

    Uplift(mesh, rate=1.0e-3).uplift(100.0)
    assert mesh.elev == pytest.approx([2.1, 1.1, 0.0])

    Uplift(mesh, rate=np.array([1.0e-3, 2.0e-3, 5.0e-3])).uplift(100.0)
    assert mesh.elev == pytest.approx([2.2, 1.3, 0.0])

    with pytest.raises(ValueError):
        Uplift(None)
