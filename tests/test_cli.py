"""Demo command line driver."""

import xml.etree.ElementTree as ET

from femfield.cli import build_truss_chain, main
from femfield.config import ExportConfig


def test_demo_writes_steps_and_collection(tmp_path, capsys):
    main(["--steps", "2", "--elements", "3", "--stype", "zz", "--out", str(tmp_path)])

    assert (tmp_path / "truss.1.vtu").exists()
    assert (tmp_path / "truss.2.vtu").exists()
    root = ET.parse(tmp_path / "truss.pvd").getroot()
    times = [float(d.get("timestep")) for d in root.iter("DataSet")]
    assert times == [1.0, 2.0]
    assert "[demo]" in capsys.readouterr().out


def test_demo_reads_config_file(tmp_path):
    cfg = ExportConfig(vars=["stress"], basename="cfg", time_scale=10.0)
    path = tmp_path / "export.yaml"
    cfg.save_yaml(str(path))

    main(["--config", str(path), "--steps", "1", "--out", str(tmp_path / "out")])

    root = ET.parse(tmp_path / "out" / "cfg.pvd").getroot()
    assert [float(d.get("timestep")) for d in root.iter("DataSet")] == [10.0]


def test_chain_regions():
    dom = build_truss_chain(n_elements=4, regions=2)
    assert [e.region for e in dom.elements()] == [1, 1, 2, 2]
    assert dom.n_nodes == 5
