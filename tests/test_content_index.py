from PIL import Image

from ofmtree.content_index import (
    ContentIndex,
    DocumentDescriptor,
    ImageDescriptor,
    build_content_index,
    read_image_size,
)


class TestBuildContentIndex:
    def test_notes_are_keyed_without_extension(self, vault):
        index = build_content_index(vault)
        assert index.lookup("deep note") == DocumentDescriptor("/Folder/Deep Note.md")

    def test_images_are_keyed_with_extension(self, vault):
        index = build_content_index(vault)
        assert index.lookup("photo.png") == ImageDescriptor("/images/photo.png", 400, 300)
        assert "photo" not in index

    def test_svg_sizes(self, vault):
        index = build_content_index(vault)
        assert index.lookup("diagram.svg") == ImageDescriptor("/images/diagram.svg", 120, 80)
        assert index.lookup("boxed.svg") == ImageDescriptor("/images/boxed.svg", 50, 25)

    def test_corrupt_images_and_other_files_are_skipped(self, vault):
        index = build_content_index(vault)
        assert index.lookup("broken.png") is None
        assert index.lookup("notes.txt") is None
        assert index.lookup("notes") is None

    def test_file_closest_to_root_wins(self, vault):
        index = build_content_index(vault)
        assert index.lookup("note").path == "/Note.md"

    def test_lookup_is_case_insensitive(self, vault):
        index = build_content_index(vault)
        assert index.lookup("PHOTO.PNG") is not None
        assert "Deep Note" in index

    def test_from_directory(self, vault):
        assert len(ContentIndex.from_directory(vault)) == len(build_content_index(vault))

    def test_empty_directory(self, tmp_path):
        assert len(build_content_index(tmp_path)) == 0


class TestReadImageSize:
    def test_raster(self, tmp_path):
        path = tmp_path / "wide.gif"
        Image.new("RGB", (64, 16)).save(path)
        assert read_image_size(path) == (64, 16)

    def test_unreadable(self, tmp_path):
        path = tmp_path / "bad.jpg"
        path.write_bytes(b"\x00\x01")
        assert read_image_size(path) is None

    def test_svg_without_size(self, tmp_path):
        path = tmp_path / "nosize.svg"
        path.write_text('<svg xmlns="http://www.w3.org/2000/svg"></svg>', encoding="utf-8")
        assert read_image_size(path) is None
