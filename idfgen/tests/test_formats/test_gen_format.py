import numpy as np
import pytest

from idfgen.features import AttributeTable, Feature, FeatureCollection, FeatureType
from idfgen.formats import gen


def test_write_read_ascii(tmp_path, two_squares):
    path = tmp_path / "squares.GEN"
    gen.write(path, two_squares)
    assert gen.dat_path(path).exists()

    back = gen.read_ascii(path)
    assert [f.id for f in back] == ["1", "2"]
    assert all(f.is_polygon for f in back)
    assert np.allclose(back.features[0].points, two_squares.features[0].points)
    assert back.table.columns == ["ID", "name", "value"]
    assert back.table.get_row("1") == ["1", "west", "1.5"]


def test_ascii_text_layout(tmp_path, crossing_line):
    path = tmp_path / "line.GEN"
    gen.write(path, crossing_line)
    lines = path.read_text().splitlines()
    assert lines == ["1", " 2, 5", " 8, 5", " 15, 5", "END", "END"]
    assert not gen.dat_path(path).exists()


def test_read_ascii_space_separated(tmp_path):
    path = tmp_path / "mixed.gen"
    path.write_text(
        "1\n0.0 0.0\n0.0 1.0\n1.0 1.0\n0.0 0.0\nend\n"
        "2\n5.0\t5.0\n6.0, 5.0 , 0.0\nend\nend\n"
    )
    collection = gen.read_ascii(path)
    assert [f.feature_type for f in collection] == [FeatureType.POLYGON, FeatureType.LINE]
    assert collection.table is None


def test_read_ascii_points(tmp_path):
    path = tmp_path / "points.GEN"
    path.write_text("1, 10.0, 20.0\n2, 30.5, 40.0\nEND\n")
    collection = gen.read_ascii(path)
    assert len(collection) == 2
    assert all(f.feature_type is FeatureType.POINT for f in collection)
    assert np.array_equal(collection.features[1].points, [[30.5, 40.0]])


def test_read_ascii_invalid_vertex(tmp_path):
    path = tmp_path / "invalid.GEN"
    path.write_text("1\n0.0\nEND\nEND\n")
    with pytest.raises(ValueError, match="Unexpected coordinate count"):
        gen.read_ascii(path)


def test_write_points_roundtrip(tmp_path):
    collection = FeatureCollection([Feature.point("1", 1.0, 2.0), Feature.point("2", 3.0, 4.5)])
    path = tmp_path / "points.GEN"
    gen.write(path, collection)
    assert path.read_text().splitlines() == ["1,1,2", "2,3,4.5", "END"]
    back = gen.read(path)
    assert [f.id for f in back] == ["1", "2"]


def test_write_mixed_points_raises(tmp_path):
    collection = FeatureCollection(
        [Feature.point("1", 1.0, 2.0), Feature.line("2", [[0.0, 0.0], [1.0, 1.0]])]
    )
    with pytest.raises(ValueError, match="Points cannot be mixed"):
        gen.write(tmp_path / "mixed.GEN", collection)


def test_read_empty(tmp_path):
    path = tmp_path / "empty.GEN"
    path.write_text("END\n")
    assert len(gen.read(path)) == 0


class TestDat:
    def test_comma_quoted(self, tmp_path):
        path = tmp_path / "a.DAT"
        path.write_text("ID,name,value\n1,'a, b',2\n2,c,3\n")
        table = gen.read_dat(path)
        assert table.columns == ["ID", "name", "value"]
        assert table.get_row("1") == ["1", "a, b", "2"]

    def test_space_separated(self, tmp_path):
        path = tmp_path / "a.DAT"
        path.write_text('"ID" "value"\n1   2.5\n\n2 3\n')
        table = gen.read_dat(path)
        assert table.columns == ["ID", "value"]
        assert table.get_row("2") == ["2", "3"]

    def test_invalid_row(self, tmp_path):
        path = tmp_path / "a.DAT"
        path.write_text("ID,value\n1,2,3\n")
        with pytest.raises(ValueError, match="line 2"):
            gen.read_dat(path)

    def test_empty(self, tmp_path):
        path = tmp_path / "a.DAT"
        path.write_text("\n")
        with pytest.raises(ValueError, match="empty"):
            gen.read_dat(path)

    def test_write_quotes(self, tmp_path):
        table = AttributeTable(["ID", "name"])
        table.add_row(["1", "two words"])
        path = tmp_path / "a.DAT"
        gen.write_dat(path, table)
        assert path.read_text().splitlines() == ["ID,name", "1,'two words'"]
        assert gen.read_dat(path).get_row("1") == ["1", "two words"]

    def test_missing_values(self, tmp_path):
        path = tmp_path / "a.DAT"
        path.write_text("ID,name,value\n1,a,2\n2,b\n")
        with pytest.raises(ValueError, match="line 3"):
            gen.read_dat(path)

    def test_space_separated_quoted(self, tmp_path):
        path = tmp_path / "a.DAT"
        path.write_text("ID name\n1 'two words'\n2 '3,4'\n")
        table = gen.read_dat(path)
        assert table.get_row("1") == ["1", "two words"]
        assert table.get_row("2") == ["2", "3,4"]

    def test_empty_values_are_kept(self, tmp_path):
        path = tmp_path / "a.DAT"
        path.write_text("ID,name,value\n1,,NA\n")
        assert gen.read_dat(path).get_row("1") == ["1", "", "NA"]

    def test_write_read_commas(self, tmp_path):
        table = AttributeTable(["ID", "name", "value"])
        table.add_row(["1", "a, b", "2"])
        table.add_row(["2", "c", ""])
        path = tmp_path / "a.DAT"
        gen.write_dat(path, table)
        assert path.read_text().splitlines() == ["ID,name,value", "1,'a, b',2", "2,c,"]
        back = gen.read_dat(path)
        assert back.columns == ["ID", "name", "value"]
        assert back.get_row("1") == ["1", "a, b", "2"]
        assert back.get_row("2") == ["2", "c", ""]

    def test_write_header_only(self, tmp_path):
        path = tmp_path / "a.DAT"
        gen.write_dat(path, AttributeTable(["ID", "value"]))
        assert path.read_text() == "ID,value\n"
        assert len(gen.read_dat(path)) == 0

    def test_lowercase_extension(self, tmp_path, square_collection):
        path = tmp_path / "square.gen"
        gen.write_ascii(path, square_collection)
        (tmp_path / "square.dat").write_text("ID,value\n1,5\n")
        collection = gen.read_ascii(path)
        assert collection.table.get_row("1") == ["1", "5"]


def test_write_read_binary(tmp_path, two_squares, crossing_line):
    path = tmp_path / "squares.GEN"
    gen.write(path, two_squares, binary=True)
    back = gen.read(path)
    assert [f.id for f in back] == ["1", "2"]
    assert all(f.is_polygon for f in back)
    assert np.allclose(back.features[1].points, two_squares.features[1].points)
    assert back.table.get_row("2") == ["2", "east", "4"]

    path = tmp_path / "line.GEN"
    gen.write_binary(path, crossing_line)
    back = gen.read_binary(path)
    assert back.features[0].is_line
    assert back.table.columns == ["ID"]
    assert np.allclose(back.features[0].points, crossing_line.features[0].points)
