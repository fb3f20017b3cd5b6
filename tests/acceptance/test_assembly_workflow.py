"""
Assembly workflow acceptance tests.

Walks a condominium general meeting end to end over HTTP: scheduling,
agenda, check-in by QR code, voting, results and minutes.
"""

import json
import pytest
from bson import ObjectId


class TestOrdinaryAssemblyWorkflow:
    """AGO from call notice to minutes."""

    @pytest.fixture(autouse=True)
    def setup_condominium(self, test_client, test_db, auth_headers):
        """Set up a condominium with a sindico and three residents."""
        self.client = test_client
        self.db = test_db
        self.condominium_id = "condo_jardim_das_flores"

        self.sindico_id = str(ObjectId())
        self.resident_ids = [str(ObjectId()) for _ in range(3)]

        self.db.profiles.insert_many([
            {"_id": user_id, "condominiumId": self.condominium_id, "fullName": name, "unitNumber": unit}
            for user_id, name, unit in zip(
                self.resident_ids,
                ["Ana Lima", "Bruno Costa", "Carla Dias"],
                ["101", "202", "303"]
            )
        ])

        self.sindico = auth_headers(self.sindico_id, self.condominium_id, role="sindico")
        self.residents = [auth_headers(user_id, self.condominium_id) for user_id in self.resident_ids]

    def _post(self, path, headers, body=None):
        response = self.client.post(path, json=body, headers=headers) if body is not None \
            else self.client.post(path, headers=headers)
        return response, json.loads(response.data) if response.data else None

    def test_election_of_a_new_sindico(self):
        """Test the complete AGO flow produces the expected tally."""
        response, assembly = self._post('/api/assemblies', self.sindico, {
            "title": "AGO 2025",
            "scheduled_at": "2025-03-15T19:00:00",
            "agenda_doc_topics": ["Prestação de contas 2024", "Troca de síndico"]
        })
        assert response.status_code == 201
        assert assembly['status'] == 'scheduled'
        assembly_id = assembly['id']

        response, item = self._post(f'/api/assemblies/{assembly_id}/agenda-items', self.sindico, {
            "title": "Troca de síndico",
            "options": ["Candidato A", "Candidato B"]
        })
        assert response.status_code == 201
        assert item['status'] == 'pending'
        pauta_id = item['id']

        response, assembly = self._post(f'/api/assemblies/{assembly_id}/status', self.sindico, {"status": "in_progress"})
        assert assembly['status'] == 'in_progress'

        for headers in self.residents:
            response, outcome = self._post(f'/api/assemblies/{assembly_id}/attendance', headers)
            assert outcome['outcome'] == 'recorded'

        response, item = self._post(f'/api/agenda-items/{pauta_id}/open', self.sindico)
        assert item['status'] == 'voting'

        for headers, choice in zip(self.residents, ["Candidato A", "Candidato A", "Candidato B"]):
            response, outcome = self._post(f'/api/agenda-items/{pauta_id}/votes', headers, {"choice": choice})
            assert response.status_code == 201

        response, item = self._post(f'/api/agenda-items/{pauta_id}/close', self.sindico)
        assert item['status'] == 'closed'

        results = json.loads(self.client.get(f'/api/agenda-items/{pauta_id}/results', headers=self.residents[0]).data)
        per_option = {option['option']: option for option in results['perOption']}
        assert results['totalVotes'] == 3
        assert per_option['Candidato A']['votes'] == 2
        assert per_option['Candidato A']['percentage'] == pytest.approx(66.7, abs=0.05)
        assert per_option['Candidato B']['votes'] == 1
        assert per_option['Candidato B']['percentage'] == pytest.approx(33.3, abs=0.05)
        assert results['winner'] == 'Candidato A'

        response, assembly = self._post(f'/api/assemblies/{assembly_id}/status', self.sindico, {"status": "closed"})
        assert assembly['status'] == 'closed'
        assert 'record-minutes' in assembly['_links']

        response = self.client.patch(f'/api/assemblies/{assembly_id}', json={
            "minutes_topics": ["Eleito o Candidato A como síndico"],
            "minutes_doc_ref": "https://docs.example.com/ata-ago-2025.pdf"
        }, headers=self.sindico)
        assert response.status_code == 200
        assert json.loads(response.data)['minutesTopics'] == ["Eleito o Candidato A como síndico"]

    def test_repeated_scans_and_votes_keep_one_record(self):
        """Test QR codes scanned twice and double-clicked votes are harmless."""
        _, assembly = self._post('/api/assemblies', self.sindico, {
            "title": "AGE Obras", "scheduled_at": "2025-06-01T19:00:00"
        })
        _, item = self._post(f"/api/assemblies/{assembly['id']}/agenda-items", self.sindico, {
            "title": "Reforma da fachada", "options": ["Sim", "Não"]
        })
        self._post(f"/api/agenda-items/{item['id']}/open", self.sindico)

        resident = self.residents[0]
        scans = [self._post(f"/api/assemblies/{assembly['id']}/attendance", resident)[0] for _ in range(3)]
        votes = [self._post(f"/api/agenda-items/{item['id']}/votes", resident, {"choice": "Sim"})[0] for _ in range(3)]

        assert [response.status_code for response in scans] == [201, 200, 200]
        assert [response.status_code for response in votes] == [201, 200, 200]
        assert self.db.attendance_records.count_documents({"assemblyId": assembly['id']}) == 1
        assert self.db.ballots.count_documents({"pautaId": item['id']}) == 1

        attendance = json.loads(self.client.get(
            f"/api/assemblies/{assembly['id']}/attendance", headers=self.sindico
        ).data)
        assert attendance['_embedded']['attendance'][0]['fullName'] == "Ana Lima"
        assert attendance['_embedded']['attendance'][0]['unitNumber'] == "101"

    def test_cancelled_assembly_is_frozen(self):
        """Test a cancelled assembly refuses check-ins, edits and restarts."""
        _, assembly = self._post('/api/assemblies', self.sindico, {
            "title": "AGE Extraordinária", "scheduled_at": "2025-07-01T19:00:00"
        })
        assembly_id = assembly['id']
        self._post(f'/api/assemblies/{assembly_id}/status', self.sindico, {"status": "cancelled"})

        check_in, _ = self._post(f'/api/assemblies/{assembly_id}/attendance', self.residents[0])
        restart, problem = self._post(f'/api/assemblies/{assembly_id}/status', self.sindico, {"status": "in_progress"})
        edit = self.client.patch(f'/api/assemblies/{assembly_id}', json={"title": "Outra"}, headers=self.sindico)

        assert check_in.status_code == 409
        assert restart.status_code == 409
        assert problem['currentStatus'] == 'cancelled'
        assert edit.status_code == 409

    def test_residents_cannot_run_the_assembly(self):
        """Test management endpoints are closed to residents."""
        resident = self.residents[0]

        response, problem = self._post('/api/assemblies', resident, {
            "title": "AGO 2025", "scheduled_at": "2025-03-15T19:00:00"
        })

        assert response.status_code == 403
        assert problem['type'].endswith('/insufficient-permissions')
