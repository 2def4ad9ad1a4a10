"""Elementary transform store tests"""
import pytest

import numpy as np
from numpy.testing import assert_allclose

from iec_frames.elementary import DICOM_TO_PATIENT_MATRIX, ElementaryTransformStore
from iec_frames.errors import MissingTransformError, NotUpdatableError
from iec_frames.frames import CoordinateFrame as F, IEC_TRANSFORMS

from testing_utilities import random_uniform, rot_x, rot_y, rot_z, trans

__all__ = ['TestElementaryTransformStore', 'TestUpdates', 'TestImageGrid']

NUM_STATES = 5

@pytest.fixture
def store() -> ElementaryTransformStore:
    return ElementaryTransformStore()

class TestElementaryTransformStore():
    def test_one_transform_per_declared_pair(self, store: ElementaryTransformStore):
        assert len(store) == len(IEC_TRANSFORMS)
        for pair in IEC_TRANSFORMS:
            assert pair in store

        assert (F.Gantry, F.Collimator) not in store
        assert ('Imager', F.Gantry) not in store

    def test_defaults(self, store: ElementaryTransformStore):
        for child, parent in IEC_TRANSFORMS:
            expected = DICOM_TO_PATIENT_MATRIX if child == F.DICOM else np.eye(4)
            assert_allclose(store.lookup(child, parent), expected)

    def test_dicom_to_patient_is_rotation_about_x(self, store: ElementaryTransformStore):
        assert_allclose(store.lookup(F.DICOM, F.Patient), rot_x(-90), atol=1e-15)

    def test_missing(self, store: ElementaryTransformStore):
        with pytest.raises(MissingTransformError):
            store.lookup(F.Gantry, F.Collimator)

    def test_lookup_returns_copy(self, store: ElementaryTransformStore):
        matrix = store.lookup(F.Collimator, F.Gantry)
        matrix[:] = 0
        assert_allclose(store.lookup(F.Collimator, F.Gantry), np.eye(4))

    def test_same_instance_reused(self, store: ElementaryTransformStore):
        before = store._transform(F.Collimator, F.Gantry)
        store.update_collimator_to_gantry(10)
        assert store._transform(F.Collimator, F.Gantry) is before

    def test_revision(self, store: ElementaryTransformStore):
        assert store.revision(F.Collimator, F.Gantry) == 0
        store.update_collimator_to_gantry(10)
        store.update_collimator_to_gantry(20)
        assert store.revision(F.Collimator, F.Gantry) == 2
        assert store.revision(F.Gantry, F.FixedReference) == 0

    def test_update_edge_dispatch(self, store: ElementaryTransformStore):
        store.update_edge(F.Collimator, F.Gantry, 90, bz=5)
        assert_allclose(store.lookup(F.Collimator, F.Gantry), trans(0, 0, 5) @ rot_z(90), atol=1e-12)

    @pytest.mark.parametrize('pair', [(F.DICOM, F.Patient), (F.FlatPanel, F.Gantry),
                                      (F.RAS, F.Patient), (F.FixedReference, F.RAS)])
    def test_constant_not_updatable(self, store: ElementaryTransformStore, pair):
        with pytest.raises(NotUpdatableError):
            store.update_edge(*pair, 10)

    def test_update_edge_missing(self, store: ElementaryTransformStore):
        with pytest.raises(MissingTransformError):
            store.update_edge(F.Gantry, F.Collimator, 10)

    def test_set_matrix(self, store: ElementaryTransformStore):
        store.set_matrix(F.FlatPanel, F.Gantry, trans(0, 0, -500))
        assert_allclose(store.lookup(F.FlatPanel, F.Gantry), trans(0, 0, -500))
        assert store.revision(F.FlatPanel, F.Gantry) == 1

    def test_iteration_yields_copies(self, store: ElementaryTransformStore):
        names = []
        for name, matrix in store:
            names.append(name)
            matrix[:3,3] = (0, 0, -500)

        assert names[0] == 'FixedReferenceToRas'
        assert len(names) == len(IEC_TRANSFORMS)
        assert_allclose(store.lookup(F.FlatPanel, F.Gantry), np.eye(4))
        assert store.revision(F.FlatPanel, F.Gantry) == 0

    def test_describe(self, store: ElementaryTransformStore):
        text = store.describe()
        assert 'CollimatorToGantry:' in text
        assert 'FixedReferenceToRas:' in text

@pytest.mark.parametrize('angle, offset',
    [(random_uniform(360, 3), random_uniform(1000, 3)) for _ in range(NUM_STATES)])
class TestUpdates():
    def test_gantry(self, store: ElementaryTransformStore, angle, offset):
        store.update_gantry_to_fixed_reference(angle[0], angle[1])
        assert_allclose(store.lookup(F.Gantry, F.FixedReference),
                        rot_x(angle[1]) @ rot_y(angle[0]), atol=1e-12)

    def test_collimator(self, store: ElementaryTransformStore, angle, offset):
        store.update_collimator_to_gantry(angle[0], offset[0])
        assert_allclose(store.lookup(F.Collimator, F.Gantry),
                        trans(0, 0, offset[0]) @ rot_z(angle[0]), atol=1e-9)

    def test_wedge_filter(self, store: ElementaryTransformStore, angle, offset):
        store.update_wedge_filter_to_collimator(angle[0], offset[0])
        assert_allclose(store.lookup(F.WedgeFilter, F.Collimator),
                        trans(0, 0, offset[0]) @ rot_z(angle[0]), atol=1e-9)

    def test_patient_support(self, store: ElementaryTransformStore, angle, offset):
        store.update_patient_support_rotation_to_fixed_reference(angle[0])
        assert_allclose(store.lookup(F.PatientSupportRotation, F.FixedReference),
                        rot_z(angle[0]), atol=1e-12)

    def test_eccentric(self, store: ElementaryTransformStore, angle, offset):
        store.update_table_top_eccentric_rotation_to_patient_support_rotation(angle[0], offset[1])
        assert_allclose(store.lookup(F.TableTopEccentricRotation, F.PatientSupportRotation),
                        trans(0, offset[1], 0) @ rot_z(angle[0]), atol=1e-9)

    def test_table_top(self, store: ElementaryTransformStore, angle, offset):
        store.update_table_top_to_table_top_eccentric_rotation(*offset, angle[0], angle[1])
        assert_allclose(store.lookup(F.TableTop, F.TableTopEccentricRotation),
                        trans(*offset) @ rot_x(angle[0]) @ rot_y(angle[1]), atol=1e-9)

    def test_patient(self, store: ElementaryTransformStore, angle, offset):
        store.update_patient_to_table_top(*offset, *angle)
        assert_allclose(store.lookup(F.Patient, F.TableTop),
                        trans(*offset) @ rot_x(angle[0]) @ rot_y(angle[1]) @ rot_z(angle[2]),
                        atol=1e-9)

    def test_update_resets(self, store: ElementaryTransformStore, angle, offset):
        """Repeated updates do not accumulate"""
        store.update_patient_to_table_top(*offset, *angle)
        store.update_patient_to_table_top(0, 0, 0)
        assert_allclose(store.lookup(F.Patient, F.TableTop), np.eye(4), atol=1e-12)

    def test_update_locality(self, store: ElementaryTransformStore, angle, offset):
        before = {pair: store.lookup(*pair) for pair in IEC_TRANSFORMS}
        store.update_table_top_to_table_top_eccentric_rotation(*offset, angle[0], angle[1])
        for pair in IEC_TRANSFORMS:
            if pair != (F.TableTop, F.TableTopEccentricRotation):
                assert_allclose(store.lookup(*pair), before[pair])

class TestImageGrid():
    def test_axis_aligned(self, store: ElementaryTransformStore):
        store.update_patient_image_regular_grid_to_dicom(2, 3, 4, 10, 20, 30)
        expected = np.diag([2., 3., 4., 1.])
        expected[:3,3] = (10, 20, 30)
        assert_allclose(store.lookup(F.PatientImageRegularGrid, F.DICOM), expected)

    def test_direction_cosines(self, store: ElementaryTransformStore):
        store.update_patient_image_regular_grid_to_dicom(
            0.5, 0.7, 3.0, -1, -2, -3, row_cosines=(0, 1, 0), column_cosines=(0, 0, -1))
        matrix = store.lookup(F.PatientImageRegularGrid, F.DICOM)

        assert_allclose(matrix[:3,0], [0, 0.5, 0])
        assert_allclose(matrix[:3,1], [0, 0, -0.7])
        assert_allclose(matrix[:3,2], np.cross([0, 1, 0], [0, 0, -1]) * 3.0)
        assert_allclose(matrix[:3,3], [-1, -2, -3])
        assert_allclose(matrix[3], [0, 0, 0, 1])

    def test_voxel_position(self, store: ElementaryTransformStore):
        """Voxel (column 1, row 2, slice 3) lands at origin + scaled direction cosines"""
        store.update_patient_image_regular_grid_to_dicom(0.5, 0.5, 2.0, 100, 0, 0)
        matrix = store.lookup(F.PatientImageRegularGrid, F.DICOM)
        assert_allclose(matrix @ [1, 2, 3, 1], [100.5, 1.0, 6.0, 1.0])

    def test_invalid_cosines(self, store: ElementaryTransformStore):
        with pytest.raises(ValueError):
            store.update_patient_image_regular_grid_to_dicom(1, 1, 1, 0, 0, 0, row_cosines=(1, 0))
