import unittest as ut

from gcsvfs.storage.base import MalformedPathError
from gcsvfs.storage.names import ResourceName, parse, derive, ROOT_KEY
from gcsvfs.storage.types import FileType


class TestParse(ut.TestCase):

    def test_file_name(self):
        name = parse("gcs://bucket/docs/a.txt")
        self.assertEqual(name, ResourceName("gcs", "bucket", "docs/a.txt", FileType.FILE))
        self.assertEqual(name.uri(), "gcs://bucket/docs/a.txt")

    def test_trailing_slash_declares_folder(self):
        name = parse("gcs://bucket/docs/")
        self.assertEqual(name.key, "docs")
        self.assertEqual(name.declared_type, FileType.FOLDER)
        self.assertEqual(name.uri(), "gcs://bucket/docs/")

    def test_root(self):
        for uri in ("gcs://bucket", "gcs://bucket/", "gcs://bucket//"):
            with self.subTest(uri=uri):
                name = parse(uri)
                self.assertTrue(name.is_root())
                self.assertEqual(name.key, ROOT_KEY)
                self.assertEqual(name.object_key(), ROOT_KEY)
                self.assertEqual(name.uri(), "gcs://bucket/")

    def test_normalization(self):
        name = parse("gcs://bucket/a//b\\c/./d/../e")
        self.assertEqual(name.key, "a/b/c/e")
        self.assertNotIn("//", name.key)

    def test_scheme_is_lowercased(self):
        name = parse("GS://Bucket/x")
        self.assertEqual(name.scheme, "gs")
        self.assertEqual(name.container, "Bucket")

    def test_missing_scheme(self):
        with self.assertRaises(MalformedPathError):
            parse("bucket/docs/a.txt")

    def test_missing_bucket(self):
        with self.assertRaises(MalformedPathError):
            parse("gcs://")

    def test_empty(self):
        with self.assertRaises(MalformedPathError):
            parse("")

    def test_escaping_root(self):
        with self.assertRaises(MalformedPathError):
            parse("gcs://bucket/../x")

    def test_dot_dot_inside_bucket(self):
        self.assertEqual(parse("gcs://bucket/a/../b").key, "b")


class TestResourceName(ut.TestCase):

    def test_listing_prefix(self):
        self.assertEqual(parse("gcs://bucket/docs").listing_prefix(), "docs/")
        self.assertEqual(parse("gcs://bucket/docs/").listing_prefix(), "docs/")
        self.assertEqual(parse("gcs://bucket/").listing_prefix(), "/")

    def test_base_name(self):
        self.assertEqual(parse("gcs://bucket/docs/a.txt").base_name(), "a.txt")
        self.assertEqual(parse("gcs://bucket/a.txt").base_name(), "a.txt")
        self.assertEqual(parse("gcs://bucket/").base_name(), "")

    def test_parent(self):
        name = parse("gcs://bucket/docs/sub/a.txt")
        parent = name.parent()
        self.assertEqual(parent.key, "docs/sub")
        self.assertEqual(parent.declared_type, FileType.FOLDER)
        self.assertTrue(parse("gcs://bucket/a.txt").parent().is_root())
        self.assertIsNone(parse("gcs://bucket/").parent())

    def test_root_uri(self):
        self.assertEqual(parse("gs://bucket/docs/a.txt").root_uri(), "gs://bucket")

    def test_relative_name(self):
        root = parse("gcs://bucket/")
        docs = parse("gcs://bucket/docs/")
        a = parse("gcs://bucket/docs/sub/a.txt")
        self.assertEqual(root.relative_name(a), "docs/sub/a.txt")
        self.assertEqual(docs.relative_name(a), "sub/a.txt")
        self.assertEqual(docs.relative_name(parse("gcs://bucket/docs")), ".")

    def test_relative_name_of_sibling_with_same_start(self):
        with self.assertRaises(MalformedPathError):
            parse("gcs://bucket/docs").relative_name(parse("gcs://bucket/docsx/a.txt"))


class TestDerive(ut.TestCase):

    def setUp(self):
        self.base = parse("gcs://bucket/docs/")

    def test_relative(self):
        name = derive(self.base, "a.txt")
        self.assertEqual(name.key, "docs/a.txt")
        self.assertEqual(name.declared_type, FileType.UNKNOWN)
        self.assertEqual(name.container, "bucket")
        self.assertEqual(name.scheme, "gcs")

    def test_absolute(self):
        self.assertEqual(derive(self.base, "/top.txt").key, "top.txt")

    def test_trailing_slash(self):
        name = derive(self.base, "sub/")
        self.assertEqual(name.key, "docs/sub")
        self.assertEqual(name.declared_type, FileType.FOLDER)

    def test_declared_type(self):
        self.assertEqual(derive(self.base, "a.txt", FileType.FILE).declared_type, FileType.FILE)

    def test_from_root(self):
        self.assertEqual(derive(parse("gcs://bucket/"), "a/b").key, "a/b")

    def test_parent_reference(self):
        self.assertEqual(derive(self.base, "../other.txt").key, "other.txt")
        with self.assertRaises(MalformedPathError):
            derive(self.base, "../../other.txt")

    def test_does_not_modify_base(self):
        derive(self.base, "a.txt")
        self.assertEqual(self.base.key, "docs")
