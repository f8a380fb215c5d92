"""
Tests for the filesystem context: directory mutation, path I/O,
metadata and search.
"""

import itertools
import unittest

from treefs.core.config_loader import FilesystemConfig
from treefs.core.subsystem import SubsystemState
from treefs.exceptions import (
    CapacityExceededError,
    ConfigValidationError,
    DirectoryNotEmptyError,
    ErrorCode,
    FileExistsError,
    FileNotFoundError,
    InvalidArgumentError,
    NameTooLongError,
    NotADirectoryError,
    NotAFileError,
    ReadOnlyError,
    SubsystemStateError,
)
from treefs.filesystem.metadata import Attribute, NodeType
from treefs.filesystem.vfs import FileSystem, create_filesystem


def names(entries):
    return [entry.name for entry in entries]


class FileSystemTestCase(unittest.TestCase):
    """Fresh filesystem with a strictly increasing clock for each test."""

    config = None

    def setUp(self):
        self.clock = itertools.count(1000).__next__
        self.fs = create_filesystem(config=self.config or FilesystemConfig(), clock=self.clock)

    def node(self, path):
        return self.fs.store.node(self.fs.resolve(path))


class TestLifecycle(unittest.TestCase):
    """Subsystem state of the filesystem."""

    def test_factory_starts_filesystem(self):
        fs = create_filesystem(FilesystemConfig())
        self.assertEqual(fs.state, SubsystemState.RUNNING)
        self.assertEqual(fs.current_directory(), '/')

    def test_invalid_limits_put_filesystem_in_error_state(self):
        fs = FileSystem(FilesystemConfig(max_open_files=0))
        with self.assertRaises(ConfigValidationError) as ctx:
            fs.initialize()
        self.assertEqual(ctx.exception.key, 'filesystem.max_open_files')
        self.assertEqual(fs.state, SubsystemState.ERROR)
        self.assertFalse(fs.health_check())
        with self.assertRaises(SubsystemStateError):
            fs.create_file('/x')

    def test_operations_before_initialize(self):
        fs = FileSystem(FilesystemConfig())
        with self.assertRaises(SubsystemStateError):
            fs.create_file('/x')

    def test_cleanup(self):
        fs = create_filesystem(FilesystemConfig())
        fs.cleanup()
        self.assertEqual(fs.state, SubsystemState.STOPPED)
        with self.assertRaises(SubsystemStateError):
            fs.list_directory('/')

    def test_start_requires_initialize(self):
        fs = FileSystem(FilesystemConfig())
        with self.assertRaises(SubsystemStateError):
            fs.start()
        self.assertEqual(fs.state, SubsystemState.UNREGISTERED)

    def test_context_manager(self):
        with FileSystem(FilesystemConfig()) as fs:
            self.assertTrue(fs.health_check())
            fs.create_file('/f')
        self.assertEqual(fs.state, SubsystemState.STOPPED)
        self.assertFalse(fs.health_check())

    def test_initialize_twice_keeps_tree(self):
        fs = create_filesystem(FilesystemConfig())
        fs.create_file('/keep')
        fs.initialize()
        self.assertTrue(fs.exists('/keep'))


class TestCreateFile(FileSystemTestCase):

    def test_create(self):
        handle = self.fs.create_file('/notes.txt')

        self.assertEqual(self.fs.resolve('/notes.txt'), handle)
        self.assertTrue(self.fs.is_file('/notes.txt'))
        info = self.fs.get_info('/notes.txt')
        self.assertEqual(info.size, 0)
        self.assertEqual(info.attributes, Attribute.NONE)

    def test_create_relative_to_cwd(self):
        self.fs.make_directory_path('/docs')
        self.fs.change_directory('/docs')
        self.fs.create_file('readme')
        self.assertTrue(self.fs.is_file('/docs/readme'))

    def test_existing_name(self):
        self.fs.create_file('/f')
        with self.assertRaises(FileExistsError) as ctx:
            self.fs.create_file('/f')
        self.assertEqual(ctx.exception.error_code, ErrorCode.ALREADY_EXISTS)

    def test_name_taken_by_directory(self):
        self.fs.make_directory_path('/d')
        with self.assertRaises(FileExistsError):
            self.fs.create_file('/d')

    def test_missing_parent(self):
        with self.assertRaises(FileNotFoundError):
            self.fs.create_file('/no/such/f')

    def test_parent_is_file(self):
        self.fs.create_file('/f')
        with self.assertRaises(FileNotFoundError):
            self.fs.create_file('/f/g')

    def test_reserved_names(self):
        for path in ('/', '', '/.', '/..'):
            with self.assertRaises(InvalidArgumentError):
                self.fs.create_file(path)

    def test_name_too_long(self):
        with self.assertRaises(NameTooLongError) as ctx:
            self.fs.create_file('/' + 'x' * 32)
        self.assertEqual(ctx.exception.error_code, ErrorCode.CAPACITY_EXCEEDED)
        self.fs.create_file('/' + 'x' * 31)

    def test_read_only_parent(self):
        self.fs.make_directory_path('/locked')
        self.fs.set_attributes('/locked', Attribute.READONLY)
        with self.assertRaises(ReadOnlyError):
            self.fs.create_file('/locked/f')

    def test_parent_stamped(self):
        self.fs.make_directory_path('/d')
        before = self.node('/d').modified
        self.fs.create_file('/d/f')
        self.assertGreater(self.node('/d').modified, before)


class TestFanOut(FileSystemTestCase):

    config = FilesystemConfig(max_children=3)

    def test_directory_full(self):
        for name in ('a', 'b', 'c'):
            self.fs.create_file(f'/{name}')
        with self.assertRaises(CapacityExceededError):
            self.fs.create_file('/d')
        with self.assertRaises(CapacityExceededError):
            self.fs.make_directory_path('/d')
        self.assertEqual(names(self.fs.list_directory('/')), ['a', 'b', 'c'])

    def test_mkdir_counts_planned_entries(self):
        self.fs.create_file('/a')
        self.fs.create_file('/b')
        with self.assertRaises(CapacityExceededError):
            self.fs.make_directory_path('/x/../y')
        self.assertFalse(self.fs.exists('/x'))

    def test_mkdir_counts_entries_of_new_directories(self):
        with self.assertRaises(CapacityExceededError) as ctx:
            self.fs.make_directory_path('/n/a/../b/../c/../d')
        self.assertEqual(ctx.exception.context['path'], '/n')
        self.assertFalse(self.fs.exists('/n'))
        self.assertEqual(self.fs.get_stats()['total_nodes'], 1)

        self.fs.make_directory_path('/n/a/../b/../c')
        self.assertEqual(sorted(names(self.fs.list_directory('/n'))), ['a', 'b', 'c'])

    def test_failed_attach_releases_node(self):
        store = self.fs.store
        for name in ('a', 'b', 'c'):
            self.fs.create_file(f'/{name}')
        with self.assertRaises(CapacityExceededError):
            store.new_child(store.root, NodeType.FILE, 'd')
        self.assertEqual(len(store), 4)
        self.assertEqual(self.fs.get_stats()['total_nodes'], 4)

    def test_move_into_full_directory(self):
        self.fs.make_directory_path('/full')
        for name in ('a', 'b', 'c'):
            self.fs.create_file(f'/full/{name}')
        self.fs.create_file('/extra')

        with self.assertRaises(CapacityExceededError):
            self.fs.rename_or_move('/extra', '/full/extra')

        self.assertTrue(self.fs.is_file('/extra'))
        self.assertEqual(len(self.fs.list_directory('/full')), 3)

    def test_rename_within_full_directory(self):
        self.fs.make_directory_path('/full')
        for name in ('a', 'b', 'c'):
            self.fs.create_file(f'/full/{name}')
        self.fs.rename_or_move('/full/a', '/full/z')
        self.assertEqual(sorted(names(self.fs.list_directory('/full'))), ['b', 'c', 'z'])


class TestMakeDirectoryPath(FileSystemTestCase):

    def test_creates_every_level(self):
        self.fs.make_directory_path('/a/b/c')
        for path in ('/a', '/a/b', '/a/b/c'):
            self.assertTrue(self.fs.is_directory(path), path)

    def test_idempotent(self):
        self.fs.make_directory_path('/a/b')
        self.fs.create_file('/a/b/f')
        self.fs.make_directory_path('/a/b')
        self.assertTrue(self.fs.is_file('/a/b/f'))
        self.assertEqual(len(self.fs.store), 4)

    def test_root_is_noop(self):
        self.fs.make_directory_path('/')
        self.fs.make_directory_path('')
        self.assertEqual(len(self.fs.store), 1)

    def test_relative_with_dots(self):
        self.fs.make_directory_path('/base')
        self.fs.change_directory('/base')
        self.fs.make_directory_path('a/./b/../c')
        self.assertEqual(sorted(names(self.fs.list_directory('/base/a'))), ['b', 'c'])

    def test_file_in_the_way(self):
        self.fs.make_directory_path('/p')
        self.fs.create_file('/p/file')
        with self.assertRaises(NotADirectoryError):
            self.fs.make_directory_path('/p/file/x')

    def test_atomic_on_late_failure(self):
        self.fs.make_directory_path('/p')
        self.fs.create_file('/p/file')
        nodes = len(self.fs.store)

        with self.assertRaises(NotADirectoryError):
            self.fs.make_directory_path('/p/q/r/../../file/z')

        self.assertFalse(self.fs.exists('/p/q'))
        self.assertEqual(len(self.fs.store), nodes)

    def test_atomic_on_bad_name(self):
        with self.assertRaises(NameTooLongError):
            self.fs.make_directory_path('/ok/' + 'x' * 40)
        self.assertFalse(self.fs.exists('/ok'))

    def test_read_only_directory(self):
        self.fs.make_directory_path('/locked/inner')
        self.fs.set_attributes('/locked', Attribute.READONLY)
        with self.assertRaises(ReadOnlyError):
            self.fs.make_directory_path('/locked/new')
        # existing subdirectories are still usable
        self.fs.make_directory_path('/locked/inner/more')
        self.assertTrue(self.fs.is_directory('/locked/inner/more'))


class TestRemoveFile(FileSystemTestCase):

    def test_remove(self):
        self.fs.create_file('/f')
        self.fs.remove_file('/f')
        self.assertFalse(self.fs.exists('/f'))
        self.assertEqual(len(self.fs.store), 1)

    def test_missing(self):
        with self.assertRaises(FileNotFoundError):
            self.fs.remove_file('/nope')

    def test_directory(self):
        self.fs.make_directory_path('/d')
        with self.assertRaises(NotAFileError):
            self.fs.remove_file('/d')

    def test_read_only_file(self):
        self.fs.create_file('/f')
        self.fs.set_attributes('/f', Attribute.READONLY)
        with self.assertRaises(ReadOnlyError):
            self.fs.remove_file('/f')
        self.assertTrue(self.fs.exists('/f'))

    def test_read_only_directory(self):
        self.fs.make_directory_path('/d')
        self.fs.create_file('/d/f')
        self.fs.set_attributes('/d', Attribute.READONLY)

        with self.assertRaises(ReadOnlyError) as ctx:
            self.fs.remove_file('/d/f')

        self.assertEqual(ctx.exception.error_code, ErrorCode.READ_ONLY)
        self.assertEqual(names(self.fs.list_directory('/d')), ['f'])

    def test_listing_order_after_remove(self):
        self.fs.make_directory_path('/d')
        for name in ('a', 'b', 'c'):
            self.fs.create_file(f'/d/{name}')
        self.fs.remove_file('/d/a')
        self.assertEqual(names(self.fs.list_directory('/d')), ['c', 'b'])


class TestRemoveEmptyDirectory(FileSystemTestCase):

    def test_remove(self):
        self.fs.make_directory_path('/d')
        self.fs.remove_empty_directory('/d')
        self.assertFalse(self.fs.exists('/d'))

    def test_not_empty(self):
        self.fs.make_directory_path('/d/e')
        with self.assertRaises(DirectoryNotEmptyError):
            self.fs.remove_empty_directory('/d')
        self.assertTrue(self.fs.is_directory('/d/e'))

    def test_root(self):
        with self.assertRaises(InvalidArgumentError):
            self.fs.remove_empty_directory('/')

    def test_file(self):
        self.fs.create_file('/f')
        with self.assertRaises(NotADirectoryError):
            self.fs.remove_empty_directory('/f')

    def test_missing(self):
        with self.assertRaises(FileNotFoundError):
            self.fs.remove_empty_directory('/nope')

    def test_read_only(self):
        self.fs.make_directory_path('/d')
        self.fs.set_attributes('/d', Attribute.READONLY)
        with self.assertRaises(ReadOnlyError):
            self.fs.remove_empty_directory('/d')

    def test_current_directory_moves_to_parent(self):
        self.fs.make_directory_path('/a/b')
        self.fs.change_directory('/a/b')
        self.fs.remove_empty_directory('.')
        self.assertEqual(self.fs.current_directory(), '/a')


class TestRenameOrMove(FileSystemTestCase):

    def setUp(self):
        super().setUp()
        self.fs.make_directory_path('/src')
        self.fs.make_directory_path('/dst')
        self.fs.create_file('/src/f')
        self.fs.write_file('/src/f', 0, b'payload')

    def test_rename_in_place(self):
        handle = self.fs.resolve('/src/f')
        self.fs.rename_or_move('/src/f', '/src/g')
        self.assertFalse(self.fs.exists('/src/f'))
        self.assertEqual(self.fs.resolve('/src/g'), handle)

    def test_move_keeps_identity_and_content(self):
        handle = self.fs.resolve('/src/f')
        self.fs.rename_or_move('/src/f', '/dst/f2')

        self.assertEqual(self.fs.resolve('/dst/f2'), handle)
        self.assertEqual(self.fs.read_file('/dst/f2', 0, 100), b'payload')
        self.assertEqual(self.fs.list_directory('/src'), [])
        self.assertEqual(self.fs.path_of(handle), '/dst/f2')

    def test_move_directory_with_subtree(self):
        self.fs.make_directory_path('/src/sub/deep')
        self.fs.rename_or_move('/src/sub', '/dst/sub')
        self.assertTrue(self.fs.is_directory('/dst/sub/deep'))

    def test_collision_leaves_tree_unchanged(self):
        self.fs.create_file('/dst/f')
        before_src = names(self.fs.list_directory('/src'))
        before_dst = names(self.fs.list_directory('/dst'))

        with self.assertRaises(FileExistsError):
            self.fs.rename_or_move('/src/f', '/dst/f')

        self.assertEqual(names(self.fs.list_directory('/src')), before_src)
        self.assertEqual(names(self.fs.list_directory('/dst')), before_dst)

    def test_same_name_same_directory(self):
        with self.assertRaises(FileExistsError):
            self.fs.rename_or_move('/src/f', '/src/f')

    def test_missing_source(self):
        with self.assertRaises(FileNotFoundError):
            self.fs.rename_or_move('/src/nope', '/dst/x')

    def test_missing_destination_parent(self):
        with self.assertRaises(FileNotFoundError):
            self.fs.rename_or_move('/src/f', '/nowhere/x')
        self.assertTrue(self.fs.exists('/src/f'))

    def test_destination_parent_is_file(self):
        self.fs.create_file('/dst/file')
        with self.assertRaises(FileNotFoundError):
            self.fs.rename_or_move('/src/f', '/dst/file/x')

    def test_root(self):
        with self.assertRaises(InvalidArgumentError):
            self.fs.rename_or_move('/', '/dst/root')

    def test_into_own_subtree(self):
        self.fs.make_directory_path('/src/sub')
        with self.assertRaises(InvalidArgumentError):
            self.fs.rename_or_move('/src', '/src/sub/src')
        self.assertTrue(self.fs.is_directory('/src/sub'))
        self.assertEqual(self.fs.path_of(self.fs.resolve('/src')), '/src')

    def test_read_only_source(self):
        self.fs.set_attributes('/src/f', Attribute.READONLY)
        with self.assertRaises(ReadOnlyError):
            self.fs.rename_or_move('/src/f', '/dst/f')

    def test_read_only_destination(self):
        self.fs.set_attributes('/dst', Attribute.READONLY)
        with self.assertRaises(ReadOnlyError):
            self.fs.rename_or_move('/src/f', '/dst/f')
        self.assertTrue(self.fs.exists('/src/f'))

    def test_bad_new_name(self):
        with self.assertRaises(NameTooLongError):
            self.fs.rename_or_move('/src/f', '/dst/' + 'y' * 32)
        with self.assertRaises(InvalidArgumentError):
            self.fs.rename_or_move('/src/f', '/dst/..')

    def test_timestamps(self):
        before = self.node('/src/f').modified
        self.fs.rename_or_move('/src/f', '/dst/f')
        self.assertGreater(self.node('/dst/f').modified, before)
        self.assertEqual(self.node('/dst').modified, self.node('/dst/f').modified)
        self.assertEqual(self.node('/src').modified, self.node('/dst/f').modified)


class TestListing(FileSystemTestCase):

    def test_storage_order(self):
        for name in ('zeta', 'alpha', 'mid'):
            self.fs.create_file(f'/{name}')
        self.assertEqual(names(self.fs.list_directory('/')), ['zeta', 'alpha', 'mid'])

    def test_current_directory_default(self):
        self.fs.make_directory_path('/d')
        self.fs.create_file('/d/f')
        self.fs.change_directory('/d')
        self.assertEqual(names(self.fs.list_directory()), ['f'])

    def test_entry_types(self):
        self.fs.make_directory_path('/d')
        self.fs.create_file('/f')
        entries = self.fs.list_directory('/')
        self.assertEqual(entries[0].node_type, NodeType.DIRECTORY)
        self.assertEqual(entries[0].display_name, 'd/')
        self.assertEqual(entries[1].display_name, 'f')

    def test_file_is_not_listable(self):
        self.fs.create_file('/f')
        with self.assertRaises(NotADirectoryError):
            self.fs.list_directory('/f')

    def test_listing_stamps_accessed(self):
        self.fs.make_directory_path('/d')
        before = self.node('/d').accessed
        self.fs.list_directory('/d')
        self.assertGreater(self.node('/d').accessed, before)


class TestChangeDirectory(FileSystemTestCase):

    def test_cd_and_back(self):
        self.fs.make_directory_path('/a/b')
        self.assertEqual(self.fs.change_directory('/a/b'), '/a/b')
        self.assertEqual(self.fs.change_directory('..'), '/a')
        self.assertEqual(self.fs.change_directory('../..'), '/')

    def test_cd_to_file(self):
        self.fs.create_file('/f')
        with self.assertRaises(NotADirectoryError):
            self.fs.change_directory('/f')
        self.assertEqual(self.fs.current_directory(), '/')

    def test_cd_missing(self):
        with self.assertRaises(FileNotFoundError):
            self.fs.change_directory('/nope')


class TestPathIO(FileSystemTestCase):

    def setUp(self):
        super().setUp()
        self.fs.create_file('/f')

    def test_read_after_write(self):
        self.assertEqual(self.fs.write_file('/f', 0, b'Hello, World!'), 13)
        self.assertEqual(self.fs.read_file('/f', 0, 13), b'Hello, World!')
        self.assertEqual(self.fs.read_file('/f', 7, 5), b'World')

    def test_short_read_at_end(self):
        self.fs.write_file('/f', 0, b'abc')
        self.assertEqual(self.fs.read_file('/f', 1, 100), b'bc')
        self.assertEqual(self.fs.read_file('/f', 3, 10), b'')
        self.assertEqual(self.fs.read_file('/f', 99, 10), b'')

    def test_write_past_end_zero_fills(self):
        self.fs.write_file('/f', 0, b'ab')
        self.fs.write_file('/f', 4, b'cd')
        self.assertEqual(self.fs.read_file('/f', 0, 10), b'ab\x00\x00cd')
        self.assertEqual(self.fs.get_info('/f').size, 6)

    def test_overwrite_keeps_size(self):
        self.fs.write_file('/f', 0, b'abcdef')
        self.fs.write_file('/f', 0, b'XY')
        self.assertEqual(self.fs.read_file('/f', 0, 10), b'XYcdef')

    def test_accepts_bytes_like(self):
        self.fs.write_file('/f', 0, bytearray(b'ab'))
        self.fs.write_file('/f', 2, memoryview(b'cd'))
        self.assertEqual(self.fs.read_file('/f', 0, 4), b'abcd')

    def test_rejects_text(self):
        with self.assertRaises(InvalidArgumentError):
            self.fs.write_file('/f', 0, 'text')
        with self.assertRaises(InvalidArgumentError):
            self.fs.write_file('/f', 0, 5)

    def test_negative_arguments(self):
        with self.assertRaises(InvalidArgumentError):
            self.fs.write_file('/f', -1, b'x')
        with self.assertRaises(InvalidArgumentError):
            self.fs.read_file('/f', -1, 1)
        with self.assertRaises(InvalidArgumentError):
            self.fs.read_file('/f', 0, -1)

    def test_directory(self):
        with self.assertRaises(NotAFileError):
            self.fs.write_file('/', 0, b'x')
        with self.assertRaises(NotAFileError):
            self.fs.read_file('/', 0, 1)

    def test_missing(self):
        with self.assertRaises(FileNotFoundError):
            self.fs.read_file('/nope', 0, 1)

    def test_read_only_file(self):
        self.fs.write_file('/f', 0, b'keep')
        self.fs.set_attributes('/f', Attribute.READONLY)
        with self.assertRaises(ReadOnlyError):
            self.fs.write_file('/f', 0, b'lose')
        self.assertEqual(self.fs.read_file('/f', 0, 4), b'keep')

    def test_file_size_limit(self):
        fs = create_filesystem(FilesystemConfig(max_file_size=16))
        fs.create_file('/small')
        fs.write_file('/small', 0, b'x' * 16)
        with self.assertRaises(CapacityExceededError):
            fs.write_file('/small', 16, b'y')
        self.assertEqual(fs.get_info('/small').size, 16)


class TestMetadata(FileSystemTestCase):

    def test_root_info(self):
        info = self.fs.get_info('/')
        self.assertEqual(info.name, '')
        self.assertTrue(info.is_directory)
        self.assertEqual(info.size, 0)

    def test_directory_child_count(self):
        self.fs.make_directory_path('/d/a')
        self.fs.create_file('/d/b')
        info = self.fs.get_info('/d')
        self.assertEqual(info.child_count, 2)
        self.assertEqual(info.size, 0)

    def test_timestamps_follow_operations(self):
        self.fs.create_file('/f')
        created = self.fs.get_info('/f')
        self.assertLessEqual(created.created, created.modified)
        self.assertLessEqual(created.modified, created.accessed)

        self.fs.write_file('/f', 0, b'data')
        written = self.fs.get_info('/f')
        self.assertGreater(written.modified, created.modified)
        self.assertEqual(written.created, created.created)

        self.fs.read_file('/f', 0, 4)
        read = self.fs.get_info('/f')
        self.assertEqual(read.modified, written.modified)
        self.assertGreater(read.accessed, written.accessed)

    def test_snapshot_is_frozen(self):
        self.fs.create_file('/f')
        info = self.fs.get_info('/f')
        self.fs.write_file('/f', 0, b'later')
        self.assertEqual(info.size, 0)

    def test_set_attributes_replaces(self):
        self.fs.create_file('/f')
        self.fs.set_attributes('/f', Attribute.HIDDEN | Attribute.ARCHIVE)
        self.fs.set_attributes('/f', Attribute.SYSTEM)
        self.assertEqual(self.fs.get_info('/f').attributes, Attribute.SYSTEM)

    def test_set_attributes_accepts_int(self):
        self.fs.create_file('/f')
        self.fs.set_attributes('/f', 0x02)
        self.assertTrue(self.fs.get_info('/f').is_read_only)

    def test_read_only_can_be_cleared(self):
        self.fs.create_file('/f')
        self.fs.set_attributes('/f', Attribute.READONLY)
        self.fs.set_attributes('/f', Attribute.NONE)
        self.fs.write_file('/f', 0, b'ok')

    def test_unknown_attribute_bits(self):
        self.fs.create_file('/f')
        with self.assertRaises(InvalidArgumentError):
            self.fs.set_attributes('/f', 0x10)

    def test_touch(self):
        self.fs.create_file('/f')
        before = self.node('/f').modified
        self.fs.touch('/f')
        node = self.node('/f')
        self.assertGreater(node.modified, before)
        self.assertEqual(node.accessed, node.modified)

    def test_touch_missing(self):
        with self.assertRaises(FileNotFoundError):
            self.fs.touch('/nope')
        self.assertFalse(self.fs.exists('/nope'))

    def test_stats(self):
        self.fs.make_directory_path('/d')
        self.fs.create_file('/d/f')
        self.fs.write_file('/d/f', 0, b'12345')
        stats = self.fs.get_stats()
        self.assertEqual(stats['total_nodes'], 3)
        self.assertEqual(stats['total_size'], 5)
        self.assertEqual(stats['open_files'], 0)
        self.assertEqual(stats['max_open_files'], 32)


class TestSearch(FileSystemTestCase):

    def setUp(self):
        super().setUp()
        self.fs.make_directory_path('/x/notes')
        self.fs.create_file('/x/one.txt')
        self.fs.create_file('/x/two.txt')
        self.fs.create_file('/x/notes/one-more.txt')
        self.fs.create_file('/top-one')

    def test_search_below_cwd(self):
        self.fs.change_directory('/x')
        # pre-order: /x/notes is the first child of /x
        self.assertEqual(self.fs.search('one'), ['/x/notes/one-more.txt', '/x/one.txt'])

    def test_search_from_root(self):
        self.assertEqual(
            sorted(self.fs.search('one')),
            ['/top-one', '/x/notes/one-more.txt', '/x/one.txt']
        )

    def test_case_sensitive(self):
        self.assertEqual(self.fs.search('ONE'), [])

    def test_start_directory_can_match(self):
        self.fs.change_directory('/x/notes')
        self.assertEqual(self.fs.search('notes'), ['/x/notes'])

    def test_empty_term(self):
        with self.assertRaises(InvalidArgumentError):
            self.fs.search('')

    def test_stamps_every_visited_node(self):
        self.fs.change_directory('/x')
        before = self.node('/x/two.txt').accessed
        self.fs.search('one')
        self.assertGreater(self.node('/x/two.txt').accessed, before)
        self.assertEqual(self.node('/top-one').accessed, self.node('/top-one').created)


class TestTreeProperties(FileSystemTestCase):
    """Structural invariants over a mixed tree."""

    def setUp(self):
        super().setUp()
        self.fs.make_directory_path('/a/b/c')
        self.fs.make_directory_path('/a/d')
        self.fs.make_directory_path('/e')
        for path in ('/a/f1', '/a/b/f2', '/a/b/c/f3', '/e/f4', '/f5'):
            self.fs.create_file(path)
        self.fs.rename_or_move('/a/d', '/e/d')
        self.fs.remove_file('/a/b/f2')

    def test_containment(self):
        store = self.fs.store
        for node in store.walk(store.root):
            if not node.is_directory:
                continue
            directory = store.path_of(node.handle)
            for entry in self.fs.list_directory(directory):
                child = self.fs.resolve(store.join(node.handle, entry.name))
                self.assertEqual(store.node(child).parent, node.handle)

    def test_path_round_trip(self):
        store = self.fs.store
        for node in store.walk(store.root):
            self.assertEqual(self.fs.resolve(store.path_of(node.handle)), node.handle)

    def test_unique_names(self):
        store = self.fs.store
        for node in store.walk(store.root):
            if node.is_directory:
                child_names = [store.node(h).name for h in node.children]
                self.assertEqual(len(child_names), len(set(child_names)))

    def test_node_count(self):
        self.assertEqual(len(list(self.fs.store.walk(self.fs.root))), len(self.fs.store))


class TestScenarios(FileSystemTestCase):
    """End-to-end flows."""

    def test_nested_write_and_read(self):
        self.fs.make_directory_path('/a/b/c')
        self.fs.create_file('/a/b/c/f.txt')
        self.assertEqual(self.fs.write_file('/a/b/c/f.txt', 0, b'Hello, World!'), 13)
        self.assertEqual(self.fs.read_file('/a/b/c/f.txt', 0, 13), b'Hello, World!')
        self.assertEqual(self.fs.get_info('/a/b/c/f.txt').size, 13)

    def test_search_in_current_directory(self):
        self.fs.make_directory_path('/x')
        self.fs.create_file('/x/one.txt')
        self.fs.create_file('/x/two.txt')
        self.fs.change_directory('/x')
        self.assertEqual(self.fs.search('one'), ['/x/one.txt'])

    def test_remove_from_read_only_directory(self):
        self.fs.make_directory_path('/d')
        self.fs.create_file('/d/f')
        self.fs.set_attributes('/d', Attribute.READONLY)
        with self.assertRaises(ReadOnlyError):
            self.fs.remove_file('/d/f')
        self.assertEqual(names(self.fs.list_directory('/d')), ['f'])

    def test_empty_then_remove(self):
        self.fs.make_directory_path('/d')
        self.fs.create_file('/d/f')
        with self.assertRaises(DirectoryNotEmptyError):
            self.fs.remove_empty_directory('/d')
        self.fs.remove_file('/d/f')
        self.fs.remove_empty_directory('/d')
        self.assertEqual(len(self.fs.store), 1)


if __name__ == '__main__':
    unittest.main()
