# Copyright (C) 2024 StaffPortal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Onboarding wizard rules: step sequencing, validation, resume and submission."""
