"""Shared fixtures: a small repository description and its content source."""

from __future__ import annotations

import pytest

from bagmover.content.static import StaticContentSource


def make_description() -> dict:
    """Two top-level communities; the first holds a sub-community and a collection.

    123/1 (community)
        123/2 (community)
            123/4 (collection)
                123/6 (item)
                123/7 (item, withdrawn, also linked to 123/5)
        123/5 (collection)
            123/8 (item)
    123/3 (community)
    """
    return {
        'communities': [
            {
                'handle': '123/1',
                'fields': {'name': 'Research', 'short_description': 'All research & more'},
                'logo': {'content': 'LOGO-BYTES'},
                'communities': [
                    {
                        'handle': '123/2',
                        'fields': {'name': 'Physics'},
                        'collections': [
                            {
                                'handle': '123/4',
                                'fields': {'name': 'Theses', 'license': 'CC-BY'},
                                'items': [
                                    {
                                        'handle': '123/6',
                                        'metadata': [
                                            {'schema': 'dc', 'element': 'title', 'value': 'On <Quarks>',
                                             'language': 'en'},
                                            {'schema': 'dc', 'element': 'contributor',
                                             'qualifier': 'author', 'value': 'Doe, J.'},
                                        ],
                                        'bundles': [
                                            {
                                                'name': 'ORIGINAL',
                                                'primary': 1,
                                                'bitstreams': [
                                                    {'sequence_id': 1, 'name': 'thesis.pdf',
                                                     'source': 'upload', 'content': '%PDF-1.4 quarks'},
                                                    {'sequence_id': 2, 'name': 'data.csv',
                                                     'description': 'raw data', 'content': 'a,b\n1,2\n'},
                                                ],
                                            },
                                            {
                                                'name': 'TEXT',
                                                'bitstreams': [
                                                    {'sequence_id': 3, 'name': 'thesis.pdf.txt',
                                                     'content': 'quarks'},
                                                ],
                                            },
                                        ],
                                    },
                                    {
                                        'handle': '123/7',
                                        'withdrawn': True,
                                        'linked': ['123/5'],
                                        'metadata': [{'schema': 'dc', 'element': 'title', 'value': 'Gone'}],
                                    },
                                ],
                            },
                        ],
                    },
                ],
                'collections': [
                    {
                        'handle': '123/5',
                        'fields': {'name': 'Reports'},
                        'items': [
                            {'handle': '123/8', 'metadata': [{'schema': 'dc', 'element': 'title', 'value': 'R1'}]},
                        ],
                    },
                ],
            },
            {'handle': '123/3', 'fields': {'name': 'Archive'}},
        ],
    }


@pytest.fixture
def description() -> dict:
    return make_description()


@pytest.fixture
def source(description) -> StaticContentSource:
    return StaticContentSource(description)
