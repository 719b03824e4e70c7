import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import mmdload_cui
from builders import build_pmx, build_vmd


def _write(tmp_path, name, data):
    p = tmp_path / name
    p.write_bytes(data)
    return str(p)


def test_auto_detects_model(tmp_path, capsys):
    path = _write(tmp_path, "a.pmx", build_pmx(
        vertices=[dict(), dict(), dict()], faces=[0, 1, 2], textures=['body.png'],
        materials=[dict(name='body', texture=0, face_count=3)]))
    assert mmdload_cui.main([path]) == 0
    out = capsys.readouterr().out
    assert "PMX 2.0 model 'model'" in out
    assert "vertices:  3" in out
    assert "material 'body': 1 faces, texture body.png" in out


def test_auto_falls_through_to_motion(tmp_path, capsys):
    path = _write(tmp_path, "a.vmd", build_vmd(model_name=b'miku', morphs=[(b'a', 0, 1.0)]))
    assert mmdload_cui.main([path]) == 0
    out = capsys.readouterr().out
    assert "VMD v2 motion for 'miku'" in out
    assert "morph keyframes:  1" in out


def test_forced_type_rejects_other_format(tmp_path):
    path = _write(tmp_path, "a.vmd", build_vmd())
    assert mmdload_cui.main([path, "--type", "pmx"]) == 1


def test_unrecognized_file(tmp_path):
    path = _write(tmp_path, "a.bin", b'\x00' * 64)
    assert mmdload_cui.main([path]) == 1


def test_corrupt_model_reports_failure(tmp_path):
    path = _write(tmp_path, "a.pmx", build_pmx(vertices=[dict()])[:40])
    assert mmdload_cui.main([path, "-v"]) == 1


def test_missing_file(tmp_path):
    assert mmdload_cui.main([str(tmp_path / "missing.pmx")]) == 1
