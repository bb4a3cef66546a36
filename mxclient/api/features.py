#
# This file is licensed under the Affero General Public License (AGPL) version 3.
#
# Copyright (C) 2026 Element Creations Ltd
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# See the GNU Affero General Public License for more details:
# <https://www.gnu.org/licenses/agpl-3.0.html>.
#
#

"""Capability discovery: which optional features the homeserver supports.

A feature is supported either in a stable form (advertised through a Matrix
version or a `*.stable` flag) or in an unstable form (advertised through an
unstable feature flag).
"""

import enum
from typing import Final, Mapping

import attr

from mxclient.api.constants import UnstableFeatures
from mxclient.types import JsonMapping


class ServerSupport(enum.Enum):
    UNSUPPORTED = "unsupported"
    UNSTABLE = "unstable"
    STABLE = "stable"


class Feature(enum.Enum):
    THREAD = "thread"
    ACCOUNT_DATA_DELETION = "account_data_deletion"
    RELATION_BASED_REDACTIONS = "relation_based_redactions"
    DELAYED_EVENTS = "delayed_events"


@attr.s(slots=True, frozen=True, auto_attribs=True)
class _FeatureDescription:
    # Spec versions in which the feature is stable.
    matrix_versions: tuple[str, ...] = ()
    # Flags in `unstable_features` which mean the stable form is available.
    stable_flags: tuple[str, ...] = ()
    # Flags in `unstable_features` which mean the unstable form is available.
    unstable_prefixes: tuple[str, ...] = ()


FEATURES: Final[Mapping[Feature, _FeatureDescription]] = {
    Feature.THREAD: _FeatureDescription(
        matrix_versions=("v1.4",),
        stable_flags=(UnstableFeatures.MSC3440_STABLE,),
        unstable_prefixes=(UnstableFeatures.MSC3440,),
    ),
    Feature.ACCOUNT_DATA_DELETION: _FeatureDescription(
        unstable_prefixes=(UnstableFeatures.MSC3391,),
    ),
    Feature.RELATION_BASED_REDACTIONS: _FeatureDescription(
        stable_flags=(UnstableFeatures.MSC3912_STABLE,),
        unstable_prefixes=(UnstableFeatures.MSC3912,),
    ),
    Feature.DELAYED_EVENTS: _FeatureDescription(
        unstable_prefixes=(UnstableFeatures.MSC4140,),
    ),
}


def build_feature_support_map(versions: JsonMapping) -> dict[Feature, ServerSupport]:
    """Work out the support level of each known feature.

    Args:
        versions: the body of a `/versions` response.
    """
    spec_versions = set(versions.get("versions") or ())
    unstable_features = versions.get("unstable_features") or {}

    support = {}
    for feature, description in FEATURES.items():
        if spec_versions.intersection(description.matrix_versions) or any(
            unstable_features.get(flag) for flag in description.stable_flags
        ):
            support[feature] = ServerSupport.STABLE
        elif any(
            unstable_features.get(flag) for flag in description.unstable_prefixes
        ):
            support[feature] = ServerSupport.UNSTABLE
        else:
            support[feature] = ServerSupport.UNSUPPORTED
    return support
