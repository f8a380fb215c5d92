"""
Tests for path parsing and resolution.
"""

import unittest

from treefs.exceptions import (
    FileNotFoundError,
    InvalidArgumentError,
    NameTooLongError,
    PathResolutionError,
)
from treefs.filesystem.metadata import NodeType
from treefs.filesystem.node import NodeStore
from treefs.filesystem.path_resolver import PathResolver


class TestParse(unittest.TestCase):
    """Splitting paths into components."""

    def test_absolute(self):
        parsed = PathResolver.parse('/a/b/c')
        self.assertTrue(parsed.is_absolute)
        self.assertEqual(parsed.components, ['a', 'b', 'c'])

    def test_relative(self):
        parsed = PathResolver.parse('a/b')
        self.assertFalse(parsed.is_absolute)
        self.assertEqual(parsed.components, ['a', 'b'])

    def test_empty_segments_dropped(self):
        parsed = PathResolver.parse('//a///b/')
        self.assertEqual(parsed.components, ['a', 'b'])

    def test_dots_kept_for_walking(self):
        parsed = PathResolver.parse('./a/../b')
        self.assertEqual(parsed.components, ['.', 'a', '..', 'b'])

    def test_str(self):
        self.assertEqual(str(PathResolver.parse('/a//b')), '/a/b')
        self.assertEqual(str(PathResolver.parse('')), '.')
        self.assertEqual(str(PathResolver.parse('/')), '/')


class TestResolve(unittest.TestCase):
    """
    Walks over the tree

        /
        ├── a/
        │   ├── b/
        │   │   └── deep.txt
        │   └── f.txt
        └── top.txt
    """

    def setUp(self):
        self.store = NodeStore()
        self.resolver = PathResolver(self.store)
        root = self.store.root

        self.a = self._add(root, 'a', NodeType.DIRECTORY)
        self.b = self._add(self.a, 'b', NodeType.DIRECTORY)
        self.deep = self._add(self.b, 'deep.txt', NodeType.FILE)
        self.f = self._add(self.a, 'f.txt', NodeType.FILE)
        self.top = self._add(root, 'top.txt', NodeType.FILE)

    def _add(self, parent, name, node_type):
        handle = self.store.new(node_type, name, parent)
        self.store.add_child(parent, handle)
        return handle

    def resolve(self, path, start=None):
        return self.resolver.resolve(path, start or self.store.root)

    def test_root_forms(self):
        for path in ('/', '', '//', '/.', '/..', '/../..'):
            self.assertEqual(self.resolve(path), self.store.root, path)

    def test_absolute_paths(self):
        self.assertEqual(self.resolve('/a'), self.a)
        self.assertEqual(self.resolve('/a/b/deep.txt'), self.deep)
        self.assertEqual(self.resolve('/top.txt'), self.top)

    def test_redundant_slashes(self):
        self.assertEqual(self.resolve('//a///b//'), self.b)

    def test_dot_and_dotdot(self):
        self.assertEqual(self.resolve('/a/./b/../f.txt'), self.f)
        self.assertEqual(self.resolve('/a/b/../../top.txt'), self.top)

    def test_dotdot_clamped_at_root(self):
        self.assertEqual(self.resolve('/../../a'), self.a)

    def test_relative_from_start(self):
        self.assertEqual(self.resolve('b/deep.txt', start=self.a), self.deep)
        self.assertEqual(self.resolve('..', start=self.b), self.a)
        self.assertEqual(self.resolve('.', start=self.b), self.b)
        self.assertEqual(self.resolve('', start=self.b), self.b)

    def test_absolute_ignores_start(self):
        self.assertEqual(self.resolve('/a', start=self.b), self.a)

    def test_case_sensitive(self):
        self.assertIsNone(self.resolve('/A'))

    def test_missing(self):
        self.assertIsNone(self.resolve('/nope'))
        self.assertIsNone(self.resolve('/a/nope/deep.txt'))

    def test_file_as_intermediate(self):
        self.assertIsNone(self.resolve('/top.txt/x'))
        self.assertIsNone(self.resolve('/a/f.txt/..'))
        self.assertIsNone(self.resolve('/a/f.txt/.'))

    def test_overlong_segment(self):
        self.assertIsNone(self.resolve('/' + 'x' * 32))

    def test_trailing_file_resolves(self):
        self.assertEqual(self.resolve('/a/f.txt/'), self.f)


class TestResolveParent(unittest.TestCase):
    """Parent-and-leaf resolution for creating entries."""

    def setUp(self):
        self.store = NodeStore()
        self.resolver = PathResolver(self.store)
        root = self.store.root
        self.a = self.store.new(NodeType.DIRECTORY, 'a', root)
        self.store.add_child(root, self.a)
        self.f = self.store.new(NodeType.FILE, 'f.txt', self.a)
        self.store.add_child(self.a, self.f)

    def resolve_parent(self, path, start=None):
        return self.resolver.resolve_parent(path, start or self.store.root)

    def test_leaf_need_not_exist(self):
        self.assertEqual(self.resolve_parent('/a/new.txt'), (self.a, 'new.txt'))

    def test_existing_leaf(self):
        self.assertEqual(self.resolve_parent('/a/f.txt'), (self.a, 'f.txt'))

    def test_top_level(self):
        self.assertEqual(self.resolve_parent('/x'), (self.store.root, 'x'))
        self.assertEqual(self.resolve_parent('x'), (self.store.root, 'x'))

    def test_relative_with_dotdot(self):
        self.assertEqual(self.resolve_parent('../y', start=self.a), (self.store.root, 'y'))

    def test_no_leaf(self):
        for path in ('', '/', '/a/.', '/a/..', '.'):
            with self.assertRaises(InvalidArgumentError):
                self.resolve_parent(path)

    def test_missing_intermediate(self):
        with self.assertRaises(PathResolutionError) as ctx:
            self.resolve_parent('/missing/x')
        self.assertEqual(ctx.exception.component, 'missing')
        self.assertIsInstance(ctx.exception, FileNotFoundError)

    def test_file_intermediate(self):
        with self.assertRaises(PathResolutionError) as ctx:
            self.resolve_parent('/a/f.txt/x')
        self.assertEqual(ctx.exception.reason, 'not a directory')

    def test_overlong_leaf(self):
        with self.assertRaises(NameTooLongError):
            self.resolve_parent('/a/' + 'n' * 32)


if __name__ == '__main__':
    unittest.main()
