"""
Slicing parameters derived from the printer and object configuration.

The parameters bound the variable layer height algorithms (minimum/maximum
layer height over all extruders in use) and place the raft below the object.
All Z values of a layer height profile are relative to the object bottom;
the raft lift is only reflected in ``object_print_z_min``/``object_print_z_max``.
"""

import math
from dataclasses import dataclass, fields
from typing import Iterable, List

from varlayer.core.config import PrinterConfig, PrintObjectConfig
from varlayer.core.logging import get_logger

logger = get_logger(__name__)

# Tolerance for all Z / height comparisons (mm).
EPSILON = 1e-4

# Absolute lower limit of a layer height (mm).
MIN_LAYER_HEIGHT = 0.01
# Lower limit used when the printer does not configure one (mm).
MIN_LAYER_HEIGHT_DEFAULT = 0.07
# Upper limit as a fraction of the nozzle diameter when not configured.
MAX_LAYER_HEIGHT_NOZZLE_RATIO = 0.75


def min_layer_height_from_nozzle(printer: PrinterConfig, extruder_id: int) -> float:
    """Minimum layer height printable by the given 1-based extruder."""
    min_layer_height = printer.min_layer_height_at(extruder_id)
    if min_layer_height == 0.0:
        return MIN_LAYER_HEIGHT_DEFAULT
    return max(MIN_LAYER_HEIGHT, min_layer_height)


def max_layer_height_from_nozzle(printer: PrinterConfig, extruder_id: int) -> float:
    """
    Maximum layer height printable by the given 1-based extruder.

    3/4 of the nozzle diameter unless configured, never below the minimum.
    """
    min_layer_height = min_layer_height_from_nozzle(printer, extruder_id)
    max_layer_height = printer.max_layer_height_at(extruder_id)
    if max_layer_height == 0.0:
        max_layer_height = MAX_LAYER_HEIGHT_NOZZLE_RATIO * printer.nozzle_diameter_at(
            extruder_id
        )
    return max(min_layer_height, max_layer_height)


@dataclass(frozen=True)
class SlicingParameters:
    """
    Immutable layering parameters of one print object.

    Attributes:
        layer_height: Nominal layer height (mm)
        min_layer_height: Lowest layer height any extruder in use can print
        max_layer_height: Highest layer height all extruders in use can print
        max_support_layer_height: Upper limit for support layers, 0 without support
        first_print_layer_height: Height of the first layer on the bed
        first_object_layer_height: Height of the first object layer, either the
            first print layer or a bridging layer over the raft
        first_object_layer_bridging: First object layer is bridged over a raft
        object_print_z_min: Print Z of the object bottom (raft lift included)
        object_print_z_max: Print Z of the object top (raft lift included)
        base_raft_layers: Number of raft base layers
        interface_raft_layers: Number of raft interface layers, the topmost
            one being the contact layer
        raft_base_top_z: Top of the raft base tier
        raft_interface_top_z: Top of the raft interface tier
        raft_contact_top_z: Top of the raft contact layer
        gap_raft_object: Vertical gap between the raft and the object
        gap_object_support: Vertical gap between the object and support below it
        gap_support_object: Vertical gap between support and the object above it
        soluble_interface: Support interface is soluble (zero gaps)
    """

    layer_height: float = 0.0
    min_layer_height: float = 0.0
    max_layer_height: float = 0.0
    max_support_layer_height: float = 0.0
    first_print_layer_height: float = 0.0
    first_object_layer_height: float = 0.0
    first_object_layer_bridging: bool = False
    object_print_z_min: float = 0.0
    object_print_z_max: float = 0.0
    base_raft_layers: int = 0
    interface_raft_layers: int = 0
    base_raft_layer_height: float = 0.0
    interface_raft_layer_height: float = 0.0
    contact_raft_layer_height: float = 0.0
    contact_raft_layer_height_bridging: bool = False
    raft_base_top_z: float = 0.0
    raft_interface_top_z: float = 0.0
    raft_contact_top_z: float = 0.0
    gap_raft_object: float = 0.0
    gap_object_support: float = 0.0
    gap_support_object: float = 0.0
    soluble_interface: bool = False

    def raft_layers(self) -> int:
        return self.base_raft_layers + self.interface_raft_layers

    def has_raft(self) -> bool:
        return self.raft_layers() > 0

    def first_object_layer_height_fixed(self) -> bool:
        """The first object layer keeps its height and cannot be edited."""
        return not self.has_raft() or self.first_object_layer_bridging

    def object_print_z_height(self) -> float:
        return self.object_print_z_max - self.object_print_z_min

    def valid(self) -> bool:
        """Check the layering invariants."""
        if self.layer_height <= 0 or self.min_layer_height <= 0:
            return False
        if not (self.min_layer_height <= self.layer_height <= self.max_layer_height):
            return False
        if self.object_print_z_max < self.object_print_z_min:
            return False
        if self.has_raft():
            if self.object_print_z_min <= 0:
                return False
            if self.raft_layers() > 1 and not (
                0 < self.raft_base_top_z
                <= self.raft_interface_top_z
                < self.raft_contact_top_z
            ):
                return False
        return True

    @classmethod
    def create_from_config(
        cls,
        printer: PrinterConfig,
        object_config: PrintObjectConfig,
        object_height: float,
        object_extruders: Iterable[int] = (),
    ) -> "SlicingParameters":
        """
        Derive slicing parameters for one object.

        Args:
            printer: Machine configuration (nozzles and layer height limits)
            object_config: Print settings of the object
            object_height: Height of the object itself, without raft (mm)
            object_extruders: 1-based ids of the extruders printing the object;
                empty means the first extruder

        Returns:
            SlicingParameters with bounds, gaps and raft geometry filled in
        """
        object_extruders: List[int] = list(object_extruders)
        layer_height = object_config.layer_height

        first_layer_height = object_config.first_layer_height.get_abs_value(layer_height)
        if object_config.first_layer_height.value <= 0:
            first_layer_height = layer_height

        support_extruder = object_config.support_material_extruder
        interface_extruder = object_config.support_material_interface_extruder
        support_extruder_dmr = printer.nozzle_diameter_at(support_extruder)
        interface_extruder_dmr = printer.nozzle_diameter_at(interface_extruder)
        soluble_interface = object_config.soluble_interface

        # Bounds over all extruders printing the object.
        min_layer_height = MIN_LAYER_HEIGHT
        max_layer_height = math.inf
        for extruder_id in object_extruders or [1]:
            min_layer_height = max(
                min_layer_height, min_layer_height_from_nozzle(printer, extruder_id)
            )
            max_layer_height = min(
                max_layer_height, max_layer_height_from_nozzle(printer, extruder_id)
            )

        base_raft_layers = object_config.raft_layers
        max_support_layer_height = 0.0
        if object_config.support_material or base_raft_layers > 0:
            support_extruders = (support_extruder, interface_extruder)
            support_min = max(
                min_layer_height_from_nozzle(printer, e) for e in support_extruders
            )
            support_max = min(
                max_layer_height_from_nozzle(printer, e) for e in support_extruders
            )
            min_layer_height = max(min_layer_height, support_min)
            max_layer_height = min(max_layer_height, support_max)
            max_support_layer_height = support_max

        min_layer_height = min(min_layer_height, layer_height)
        max_layer_height = max(max_layer_height, layer_height)

        gap = 0.0 if soluble_interface else object_config.support_material_contact_distance

        interface_raft_layers = 0
        base_raft_layer_height = 0.0
        interface_raft_layer_height = 0.0
        contact_raft_layer_height = 0.0
        first_object_layer_height = first_layer_height
        first_object_layer_bridging = False
        if base_raft_layers > 0:
            interface_raft_layers = (base_raft_layers + 1) // 2
            base_raft_layers -= interface_raft_layers
            # As thick as possible for the intermediate raft layers.
            base_raft_layer_height = max(
                layer_height, MAX_LAYER_HEIGHT_NOZZLE_RATIO * support_extruder_dmr
            )
            interface_raft_layer_height = max(
                layer_height, MAX_LAYER_HEIGHT_NOZZLE_RATIO * interface_extruder_dmr
            )
            contact_raft_layer_height = max(
                layer_height, MAX_LAYER_HEIGHT_NOZZLE_RATIO * interface_extruder_dmr
            )
            if not soluble_interface:
                # First object layer is bridged over the raft with the average
                # nozzle diameter of the object extruders.
                diameters = [
                    printer.nozzle_diameter_at(e) for e in object_extruders or [1]
                ]
                first_object_layer_height = sum(diameters) / len(diameters)
                first_object_layer_bridging = True

        raft_base_top_z = 0.0
        raft_interface_top_z = 0.0
        raft_contact_top_z = 0.0
        object_print_z_min = 0.0
        object_print_z_max = object_height
        raft_layers = base_raft_layers + interface_raft_layers
        if raft_layers > 0:
            if raft_layers == 1:
                # Only the contact layer.
                contact_raft_layer_height = first_layer_height
                raft_contact_top_z = first_layer_height
            else:
                # The first base layer is the first print layer, the last
                # interface layer is the contact layer.
                raft_base_top_z = (
                    first_layer_height + (base_raft_layers - 1) * base_raft_layer_height
                )
                raft_interface_top_z = (
                    raft_base_top_z
                    + (interface_raft_layers - 1) * interface_raft_layer_height
                )
                raft_contact_top_z = raft_interface_top_z + contact_raft_layer_height
            print_z = raft_contact_top_z + gap
            object_print_z_min = print_z
            object_print_z_max += print_z

        params = cls(
            layer_height=layer_height,
            min_layer_height=min_layer_height,
            max_layer_height=max_layer_height,
            max_support_layer_height=max_support_layer_height,
            first_print_layer_height=first_layer_height,
            first_object_layer_height=first_object_layer_height,
            first_object_layer_bridging=first_object_layer_bridging,
            object_print_z_min=object_print_z_min,
            object_print_z_max=object_print_z_max,
            base_raft_layers=base_raft_layers,
            interface_raft_layers=interface_raft_layers,
            base_raft_layer_height=base_raft_layer_height,
            interface_raft_layer_height=interface_raft_layer_height,
            contact_raft_layer_height=contact_raft_layer_height,
            raft_base_top_z=raft_base_top_z,
            raft_interface_top_z=raft_interface_top_z,
            raft_contact_top_z=raft_contact_top_z,
            gap_raft_object=gap,
            gap_object_support=gap,
            gap_support_object=gap,
            soluble_interface=soluble_interface,
        )
        logger.debug(
            "slicing_parameters_derived",
            layer_height=layer_height,
            min_layer_height=min_layer_height,
            max_layer_height=max_layer_height,
            first_object_layer_height=first_object_layer_height,
            raft_layers=raft_layers,
            object_print_z_min=object_print_z_min,
        )
        return params


# Fields that do not influence the generated layers.
_LAYERING_INDEPENDENT = {"max_support_layer_height", "object_print_z_max"}


def equal_layering(sp1: SlicingParameters, sp2: SlicingParameters) -> bool:
    """
    Return True if both parameter sets produce the same raft and object layering.

    Used to decide whether previously generated layers can be reused after
    a configuration change.
    """
    return all(
        getattr(sp1, f.name) == getattr(sp2, f.name)
        for f in fields(SlicingParameters)
        if f.name not in _LAYERING_INDEPENDENT
    )
