"""
API tests for the accounts app: login, activation, and the admin-only
user, company and team directory.
"""
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient, APITestCase

from accounts.models import Company, Team, User, UserRole
from assets.models import Asset, AssetType, UploadType
from audit.models import AuditAction, AuditLogEntry, ResourceType


class AccountsApiTestCase(APITestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            username='admin',
            email='admin@example.com',
            password='Adm1n-pass-123',
            role=UserRole.ADMIN,
            is_activated=True,
        )
        self.member = User.objects.create_user(
            username='member',
            email='member@example.com',
            password='Memb3r-pass-123',
            is_activated=True,
        )


class LoginTests(AccountsApiTestCase):
    """Token login for activated accounts."""

    def test_login_with_username_returns_token(self):
        """Valid credentials return the profile and a token."""
        response = self.client.post(
            '/api/account/login/', {'username': 'member', 'password': 'Memb3r-pass-123'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['token'], Token.objects.get(user=self.member).key)
        self.assertEqual(response.data['user']['role'], UserRole.CONTENT_CREATOR)

    def test_login_with_email(self):
        response = self.client.post(
            '/api/account/login/', {'username': 'MEMBER@example.com', 'password': 'Memb3r-pass-123'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_login_rejects_wrong_password(self):
        response = self.client.post(
            '/api/account/login/', {'username': 'member', 'password': 'nope'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'VALIDATION_ERROR')

    def test_login_rejects_account_pending_activation(self):
        """A password alone is not enough until the account is activated."""
        self.member.is_activated = False
        self.member.save(update_fields=['is_activated'])

        response = self.client.post(
            '/api/account/login/', {'username': 'member', 'password': 'Memb3r-pass-123'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('activated', response.data['fields']['non_field_errors'])

    def test_logout_drops_token(self):
        Token.objects.create(user=self.member)
        self.client.force_authenticate(self.member)

        response = self.client.post('/api/account/logout/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Token.objects.filter(user=self.member).exists())

    def test_profile_lists_teams(self):
        team = Team.objects.create(name='Growth')
        team.members.add(self.member)
        self.client.force_authenticate(self.member)

        response = self.client.get('/api/account/profile/')

        self.assertEqual(response.data['user']['team_ids'], [team.pk])


class UserAdministrationTests(AccountsApiTestCase):
    """Admin-created accounts and the activation handshake."""

    def test_admin_creates_user_and_user_activates(self):
        """The activation code handed to the admin lets the user set a password."""
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            '/api/users/', {'email': 'New.Hire@Example.com', 'role': 'SEO_SPECIALIST'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        code = response.data['activation_code']
        self.assertEqual(len(code), 12)
        new_user = User.objects.get(email='new.hire@example.com')
        self.assertFalse(new_user.is_activated)
        self.assertFalse(new_user.has_usable_password())
        entry = AuditLogEntry.objects.get(action=AuditAction.CREATE, resource_type=ResourceType.USER)
        self.assertEqual(entry.user_id, self.admin.pk)
        self.assertEqual(entry.resource_id, str(new_user.pk))

        self.client.force_authenticate(None)
        response = self.client.post(
            '/api/account/activate/',
            {
                'email': 'new.hire@example.com',
                'code': code,
                'password': 'Welcome-2-assets',
                'password_confirm': 'Welcome-2-assets',
            },
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        new_user.refresh_from_db()
        self.assertTrue(new_user.is_activated)
        self.assertIsNone(new_user.activation_code)
        self.assertTrue(new_user.check_password('Welcome-2-assets'))

    def test_activation_with_wrong_email_fails(self):
        """The code only works together with the email it was issued for."""
        self.client.force_authenticate(self.admin)
        code = self.client.post('/api/users/', {'email': 'pending@example.com'}, format='json').data['activation_code']

        self.client.force_authenticate(None)
        response = self.client.post(
            '/api/account/activate/',
            {'email': 'member@example.com', 'code': code, 'password': 'Welcome-2-assets', 'password_confirm': 'Welcome-2-assets'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['fields'], {'code': 'invalid'})

    def test_duplicate_email_conflicts(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/users/', {'email': 'member@example.com'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'CONFLICT')

    def test_non_admin_cannot_manage_users(self):
        self.client.force_authenticate(self.member)

        self.assertEqual(self.client.get('/api/users/').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(
            self.client.post('/api/users/', {'email': 'x@example.com'}, format='json').status_code,
            status.HTTP_403_FORBIDDEN,
        )

    def test_admin_changes_role_and_company(self):
        company = Company.objects.create(name='Acme')
        self.client.force_authenticate(self.admin)

        response = self.client.patch(
            f'/api/users/{self.member.pk}/',
            {'role': 'SEO_SPECIALIST', 'company': str(company.pk)},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['company']['name'], 'Acme')
        entry = AuditLogEntry.objects.get(action=AuditAction.UPDATE, resource_type=ResourceType.USER)
        self.assertEqual(entry.metadata['new'], {'role': 'SEO_SPECIALIST', 'company': str(company.pk)})

    def test_deactivate_and_reactivate(self):
        """Deactivation is recorded and withdraws access; reactivation restores it."""
        self.client.force_authenticate(self.admin)

        response = self.client.post(f'/api/users/{self.member.pk}/deactivate/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])

        again = self.client.post(f'/api/users/{self.member.pk}/deactivate/')
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)

        response = self.client.post(f'/api/users/{self.member.pk}/reactivate/')
        self.assertTrue(response.data['is_active'])
        operations = list(
            AuditLogEntry.objects.filter(resource_id=str(self.member.pk))
            .order_by('id')
            .values_list('metadata__operation', flat=True)
        )
        self.assertEqual(operations, ['deactivate', 'reactivate'])

    def test_admin_cannot_deactivate_self(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(f'/api/users/{self.admin.pk}/deactivate/')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.is_active)

    def test_regenerate_activation_code(self):
        self.client.force_authenticate(self.admin)
        first = self.client.post('/api/users/', {'email': 'slow@example.com'}, format='json').data
        user_id = first['user']['id']

        response = self.client.post(f'/api/users/{user_id}/regenerate-activation-code/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotEqual(response.data['activation_code'], first['activation_code'])
        self.assertEqual(
            self.client.post(f'/api/users/{self.member.pk}/regenerate-activation-code/').status_code,
            status.HTTP_409_CONFLICT,
        )


class CompanyAndTeamTests(AccountsApiTestCase):
    def test_members_read_but_only_admins_write(self):
        Company.objects.create(name='Acme')
        self.client.force_authenticate(self.member)

        self.assertEqual(self.client.get('/api/companies/').status_code, status.HTTP_200_OK)
        self.assertEqual(
            self.client.post('/api/companies/', {'name': 'Globex'}, format='json').status_code,
            status.HTTP_403_FORBIDDEN,
        )

    def test_admin_creates_company(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/companies/', {'name': 'Globex'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Globex')
        self.assertTrue(
            AuditLogEntry.objects.filter(action=AuditAction.CREATE, resource_type=ResourceType.COMPANY).exists()
        )

    def test_assign_users_and_counts(self):
        company = Company.objects.create(name='Acme')
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            f'/api/companies/{company.pk}/assign-users/', {'user_ids': [self.member.pk]}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.member.refresh_from_db()
        self.assertEqual(self.member.company_id, company.pk)

        detail = self.client.get(f'/api/companies/{company.pk}/')
        self.assertEqual(detail.data['user_count'], 1)
        self.assertEqual(detail.data['asset_count'], 0)

        missing = self.client.post(
            f'/api/companies/{company.pk}/assign-users/', {'user_ids': [999999]}, format='json',
        )
        self.assertEqual(missing.status_code, status.HTTP_404_NOT_FOUND)

    def test_company_with_users_or_assets_cannot_be_deleted(self):
        """Deletion is refused while anything still points at the company."""
        company = Company.objects.create(name='Acme')
        Asset.objects.create(
            title='Banner',
            asset_type=AssetType.IMAGE,
            upload_type=UploadType.SEO,
            storage_url='s3://bucket/banner.png',
            company=company,
            uploader=self.member,
        )
        self.client.force_authenticate(self.admin)

        response = self.client.delete(f'/api/companies/{company.pk}/')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('1 asset(s)', response.data['message'])
        self.assertTrue(Company.objects.filter(pk=company.pk).exists())

    def test_empty_company_is_deleted(self):
        company = Company.objects.create(name='Acme')
        self.client.force_authenticate(self.admin)

        response = self.client.delete(f'/api/companies/{company.pk}/')

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        entry = AuditLogEntry.objects.get(action=AuditAction.DELETE)
        self.assertEqual(entry.metadata, {'name': 'Acme'})

    def test_admin_creates_team_with_members(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            '/api/teams/', {'name': 'Design', 'members': [self.member.pk]}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['members'], [self.member.pk])
        self.assertEqual(list(self.member.teams.values_list('name', flat=True)), ['Design'])
